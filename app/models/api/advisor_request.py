# app/models/api/advisor_request.py
"""
Advisor API request models.
Used by the advisor feedback router for input validation.
"""

from pydantic import BaseModel, Field

from app.features.advisor_feedback.domain.models import (
    AdvisorConfidenceContext,
    AdvisorObservationPeriod,
    AdvisorRelationship,
    AdvisorResponseTimeliness,
    AdvisorStrengthArea,
)


class CreateInvitationRequest(BaseModel):
    """Request body for inviting an advisor to a session."""

    session_id: str = Field(..., min_length=1, max_length=200)
    advisor_name: str = Field(..., min_length=1, max_length=200)
    advisor_email: str = Field(..., min_length=3, max_length=254)
    relationship_type: AdvisorRelationship
    advisor_phone: str | None = Field(None, max_length=40)
    personal_message: str | None = Field(None, max_length=2000)
    include_personal_message: bool = True
    custom_questions: dict[str, str] | None = Field(
        None, description="Extra questions keyed by question id"
    )


class SendInvitationRequest(BaseModel):
    """Sender details rendered into the invitation email."""

    user_name: str = Field(..., min_length=1, max_length=200)
    user_title: str | None = Field(None, max_length=200)
    company_name: str | None = Field(None, max_length=200)


class ReminderRequest(BaseModel):
    user_name: str = Field(..., min_length=1, max_length=200)


class DeclineInvitationRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class SubmitResponsesRequest(BaseModel):
    """An advisor's answers, keyed by question id."""

    responses: dict[str, str] = Field(..., min_length=1)
    confidence_levels: dict[str, int] = Field(default_factory=dict)
    observation_period: AdvisorObservationPeriod
    confidence_context: AdvisorConfidenceContext
    specific_examples: dict[str, list[str]] | None = None
    additional_context: str | None = Field(None, max_length=2000)
    is_anonymous: bool = False


class RateAdvisorRequest(BaseModel):
    """The user's rating of an advisor's feedback."""

    overall_rating: int = Field(..., ge=1, le=5)
    insightfulness: int = Field(..., ge=1, le=5)
    specificity: int = Field(..., ge=1, le=5)
    helpfulness: int = Field(..., ge=1, le=5)
    response_timeliness: AdvisorResponseTimeliness
    would_recommend_advisor: bool = True
    positive_aspects: str | None = Field(None, max_length=2000)
    improvement_areas: str | None = Field(None, max_length=2000)
    advisor_strengths: list[AdvisorStrengthArea] = Field(default_factory=list)
    additional_feedback: str | None = Field(None, max_length=2000)
    is_anonymous_feedback: bool = False
    question_specific_ratings: dict[str, int] | None = None
