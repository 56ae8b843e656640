"""
Advisor service error taxonomy.

Every failure the service reports is an AdvisorServiceError subclass with a
stable `error_type` string; the API layer maps error types to HTTP status
codes. Nothing here is retried internally.
"""


class AdvisorServiceError(Exception):
    """Base exception for advisor service operations."""

    error_type = "advisor_service_error"

    def __init__(self, message: str, invitation_id: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.invitation_id = invitation_id
        self.recoverable = recoverable


class AdvisorLimitExceeded(AdvisorServiceError):
    error_type = "advisor_limit_exceeded"

    def __init__(self, session_id: str, limit: int):
        super().__init__(
            f"Session already has the maximum of {limit} advisor invitations",
            recoverable=False,
        )
        self.session_id = session_id
        self.limit = limit


class DuplicateAdvisor(AdvisorServiceError):
    error_type = "duplicate_advisor"

    def __init__(self, session_id: str, advisor_email: str):
        super().__init__(
            f"An invitation for {advisor_email} already exists in this session",
            recoverable=False,
        )
        self.session_id = session_id
        self.advisor_email = advisor_email


class InvitationNotFound(AdvisorServiceError):
    error_type = "invitation_not_found"

    def __init__(self, invitation_id: str):
        super().__init__(f"Invitation not found: {invitation_id}", invitation_id, recoverable=False)


class ValidationFailed(AdvisorServiceError):
    error_type = "validation_failed"

    def __init__(self, errors: list[str], invitation_id: str | None = None):
        super().__init__("; ".join(errors) or "Validation failed", invitation_id)
        self.errors = list(errors)


class RateLimitExceeded(AdvisorServiceError):
    """Raised when a client exceeds the invitation or response rate limit."""

    error_type = "rate_limit_exceeded"

    def __init__(self, message: str, retry_after: int | None = None, limit: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after
        self.limit = limit


class InvitationAlreadyCompleted(AdvisorServiceError):
    error_type = "invitation_already_completed"

    def __init__(self, invitation_id: str):
        super().__init__("This invitation has already been completed", invitation_id, recoverable=False)


class InvitationDeclined(AdvisorServiceError):
    error_type = "invitation_declined"

    def __init__(self, invitation_id: str):
        super().__init__("This invitation has been declined", invitation_id, recoverable=False)


class InvitationExpired(AdvisorServiceError):
    error_type = "invitation_expired"

    def __init__(self, invitation_id: str):
        super().__init__("This invitation has expired", invitation_id, recoverable=False)


class InvalidStatusTransition(AdvisorServiceError):
    error_type = "invalid_status_transition"

    def __init__(self, invitation_id: str, current: str, target: str):
        super().__init__(
            f"Cannot move invitation from {current} to {target}", invitation_id, recoverable=False
        )
        self.current = current
        self.target = target


class EmailServiceUnavailable(AdvisorServiceError):
    """Email dispatch failed or timed out; the invitation was left unchanged."""

    error_type = "email_service_unavailable"


class PersistenceError(AdvisorServiceError):
    """The record store rejected a read or write."""

    error_type = "persistence_error"
