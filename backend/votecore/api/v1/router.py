"""
API v1 router configuration.
"""
from fastapi import APIRouter

from votecore.api.v1.endpoints import candidates, elections, tally, voters, votes


api_router = APIRouter()

api_router.include_router(
    elections.router,
    prefix="/elections",
    tags=["Elections"]
)

api_router.include_router(
    votes.router,
    prefix="/elections",
    tags=["Voting"]
)

api_router.include_router(
    tally.router,
    prefix="/elections",
    tags=["Tally"]
)

api_router.include_router(
    candidates.router,
    prefix="/candidates",
    tags=["Elections"]
)

api_router.include_router(
    voters.router,
    prefix="/voters",
    tags=["Voters"]
)

api_router.include_router(
    voters.admin_router,
    prefix="/admin",
    tags=["Voters"]
)
