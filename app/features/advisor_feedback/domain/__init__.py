"""
Domain subpackage for the advisor feedback feature.
"""

from .errors import (
    AdvisorLimitExceeded,
    AdvisorServiceError,
    DuplicateAdvisor,
    EmailServiceUnavailable,
    InvalidStatusTransition,
    InvitationAlreadyCompleted,
    InvitationDeclined,
    InvitationExpired,
    InvitationNotFound,
    PersistenceError,
    RateLimitExceeded,
    ValidationFailed,
)
from .models import (
    AdvisorAnalytics,
    AdvisorConfidenceContext,
    AdvisorFeedbackSummary,
    AdvisorInvitation,
    AdvisorObservationPeriod,
    AdvisorRating,
    AdvisorRelationship,
    AdvisorResponse,
    AdvisorResponseTimeliness,
    AdvisorStrengthArea,
    CareerDomain,
    InvitationStatus,
)
from .questions import ADVISOR_QUESTIONS, AdvisorQuestion

__all__ = [
    "ADVISOR_QUESTIONS",
    "AdvisorAnalytics",
    "AdvisorConfidenceContext",
    "AdvisorFeedbackSummary",
    "AdvisorInvitation",
    "AdvisorLimitExceeded",
    "AdvisorObservationPeriod",
    "AdvisorQuestion",
    "AdvisorRating",
    "AdvisorRelationship",
    "AdvisorResponse",
    "AdvisorResponseTimeliness",
    "AdvisorServiceError",
    "AdvisorStrengthArea",
    "CareerDomain",
    "DuplicateAdvisor",
    "EmailServiceUnavailable",
    "InvalidStatusTransition",
    "InvitationAlreadyCompleted",
    "InvitationDeclined",
    "InvitationExpired",
    "InvitationNotFound",
    "InvitationStatus",
    "PersistenceError",
    "RateLimitExceeded",
    "ValidationFailed",
]
