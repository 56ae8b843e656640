# app/models/api/advisor_response.py
"""
Advisor API response models.
Used by the advisor feedback router for output formatting.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.features.advisor_feedback.domain.models import (
    RELATIONSHIP_INFO,
    AdvisorInvitation,
    AdvisorRating,
    AdvisorResponse,
)


class InvitationResponse(BaseModel):
    """Invitation as shown to the inviting user."""

    id: str = Field(..., description="Invitation id (also the response link token)")
    session_id: str
    advisor_name: str
    advisor_email: str
    advisor_phone: str | None = None
    relationship_type: str
    relationship_display_name: str
    personal_message: str | None = None
    include_personal_message: bool
    custom_questions: dict[str, str] | None = None
    status: str
    status_description: str
    reminder_count: int
    created_at: datetime
    sent_at: datetime | None = None
    viewed_at: datetime | None = None
    completed_at: datetime | None = None
    declined_at: datetime | None = None
    is_overdue: bool
    is_high_priority_advisor: bool

    @classmethod
    def from_domain(cls, invitation: AdvisorInvitation) -> "InvitationResponse":
        return cls(
            id=invitation.id,
            session_id=invitation.session_id,
            advisor_name=invitation.advisor_name,
            advisor_email=invitation.advisor_email,
            advisor_phone=invitation.advisor_phone,
            relationship_type=invitation.relationship_type.value,
            relationship_display_name=RELATIONSHIP_INFO[invitation.relationship_type].display_name,
            personal_message=invitation.personal_message,
            include_personal_message=invitation.include_personal_message,
            custom_questions=invitation.custom_questions,
            status=invitation.status.value,
            status_description=invitation.status_description(),
            reminder_count=invitation.reminder_count,
            created_at=invitation.created_at,
            sent_at=invitation.sent_at,
            viewed_at=invitation.viewed_at,
            completed_at=invitation.completed_at,
            declined_at=invitation.declined_at,
            is_overdue=invitation.is_overdue(),
            is_high_priority_advisor=invitation.is_high_priority_advisor,
        )


class InvitationListResponse(BaseModel):
    invitations: list[InvitationResponse]
    total_count: int


class AdvisorAnswerResponse(BaseModel):
    """One stored advisor answer with its derived scores."""

    id: str
    invitation_id: str
    question_id: str
    question_text: str | None = None
    domain: str | None = None
    response: str
    confidence_level: int | None = None
    response_quality_score: float
    credibility_weight: float
    specific_examples: list[str]
    observation_period: str
    confidence_context: str
    is_anonymous: bool
    key_themes: list[str]
    answered_at: datetime

    @classmethod
    def from_domain(cls, response: AdvisorResponse) -> "AdvisorAnswerResponse":
        return cls(
            id=response.id,
            invitation_id=response.invitation_id,
            question_id=response.question_id,
            question_text=response.question_text,
            domain=response.domain.value if response.domain else None,
            response=response.response,
            confidence_level=response.confidence_level,
            response_quality_score=response.response_quality_score,
            credibility_weight=response.credibility_weight,
            specific_examples=response.specific_examples,
            observation_period=response.observation_period.value,
            confidence_context=response.confidence_context.value,
            is_anonymous=response.is_anonymous,
            key_themes=response.key_themes,
            answered_at=response.answered_at,
        )


class AdvisorAnswerListResponse(BaseModel):
    responses: list[AdvisorAnswerResponse]
    total_count: int


class AdvisorRatingResponse(BaseModel):
    id: str
    invitation_id: str
    average_rating: float
    is_high_quality_advisor: bool
    overall_assessment: str
    rated_at: datetime

    @classmethod
    def from_domain(cls, rating: AdvisorRating) -> "AdvisorRatingResponse":
        return cls(
            id=rating.id,
            invitation_id=rating.invitation_id,
            average_rating=rating.average_rating,
            is_high_quality_advisor=rating.is_high_quality_advisor,
            overall_assessment=rating.overall_assessment,
            rated_at=rating.rated_at,
        )


class ReminderResponse(BaseModel):
    sent: bool


class ExpireInvitationsResponse(BaseModel):
    expired: int
