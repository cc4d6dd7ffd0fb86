"""
Typed failures raised by the core services.

Every failure mode carries a stable ``kind`` and an HTTP status so callers can
tell them apart.
"""


class VoteCoreError(Exception):
    """Base class for all core failures."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.kind


class ValidationError(VoteCoreError):
    """Malformed or missing input."""
    kind = "validation_error"
    status_code = 422


class AuthorizationError(VoteCoreError):
    """Caller lacks the required role."""
    kind = "authorization_error"
    status_code = 403


class NotFoundError(VoteCoreError):
    """Referenced entity does not exist."""
    kind = "not_found"
    status_code = 404


class ConflictError(VoteCoreError):
    """Duplicate registration."""
    kind = "conflict"
    status_code = 409


class InvalidStateError(VoteCoreError):
    """State transition not allowed from the current state."""
    kind = "invalid_state"
    status_code = 409


class ElectionNotVotableError(VoteCoreError):
    """Election is not published and ongoing."""
    kind = "election_not_votable"
    status_code = 409


class InvalidCandidateError(VoteCoreError):
    """Candidate does not belong to the election."""
    kind = "invalid_candidate"
    status_code = 422


class NotEligibleError(VoteCoreError):
    """Voter is not an approved registration owned by the caller."""
    kind = "not_eligible"
    status_code = 403


class DuplicateVoteError(VoteCoreError):
    """A vote for this voter already exists in this election."""
    kind = "duplicate_vote"
    status_code = 409


class StorageUnavailableError(VoteCoreError):
    """Storage kept failing while recording the vote."""
    kind = "storage_unavailable"
    status_code = 503
