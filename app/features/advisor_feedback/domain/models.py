"""
Domain models for the advisor feedback feature.

Persisted records (invitations, responses, ratings) are pydantic models so
the schema registry can serialize them; derived aggregates (analytics,
feedback summary) are plain dataclasses computed on demand.

Every enum has a matching lookup table with its display metadata. Code that
needs per-member behaviour indexes the table instead of branching on members.
"""

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


@dataclass(frozen=True, slots=True)
class EnumInfo:
    display_name: str
    description: str


class AdvisorRelationship(StrEnum):
    MANAGER = "manager"
    COLLEAGUE = "colleague"
    MENTOR = "mentor"
    FRIEND = "friend"
    FAMILY = "family"
    CLIENT = "client"
    SPONSOR = "sponsor"
    PEER = "peer"
    OTHER = "other"


RELATIONSHIP_INFO: dict[AdvisorRelationship, EnumInfo] = {
    AdvisorRelationship.MANAGER: EnumInfo(
        "Manager", "Your current or former manager who knows your work performance"
    ),
    AdvisorRelationship.COLLEAGUE: EnumInfo("Colleague", "A colleague who works closely with you"),
    AdvisorRelationship.MENTOR: EnumInfo("Mentor", "Someone who has guided your career development"),
    AdvisorRelationship.FRIEND: EnumInfo("Friend", "A personal friend who knows your professional side"),
    AdvisorRelationship.FAMILY: EnumInfo("Family Member", "A family member who understands your work life"),
    AdvisorRelationship.CLIENT: EnumInfo("Client", "A client who has experienced your professional services"),
    AdvisorRelationship.SPONSOR: EnumInfo("Sponsor", "Someone who actively champions your career"),
    AdvisorRelationship.PEER: EnumInfo("Industry Peer", "A peer in your profession or industry"),
    AdvisorRelationship.OTHER: EnumInfo("Other", "Another type of professional relationship"),
}

HIGH_PRIORITY_RELATIONSHIPS = frozenset(
    {AdvisorRelationship.MANAGER, AdvisorRelationship.MENTOR, AdvisorRelationship.SPONSOR}
)


class InvitationStatus(StrEnum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    COMPLETED = "completed"
    DECLINED = "declined"
    EXPIRED = "expired"


INVITATION_STATUS_INFO: dict[InvitationStatus, EnumInfo] = {
    InvitationStatus.DRAFT: EnumInfo("Draft", "Invitation created but not yet sent"),
    InvitationStatus.SENT: EnumInfo("Sent", "Invitation sent to advisor"),
    InvitationStatus.VIEWED: EnumInfo("Viewed", "Advisor has opened the invitation"),
    InvitationStatus.COMPLETED: EnumInfo("Completed", "Advisor has completed their responses"),
    InvitationStatus.DECLINED: EnumInfo("Declined", "Advisor has declined to participate"),
    InvitationStatus.EXPIRED: EnumInfo("Expired", "Invitation has expired without response"),
}

# Forward-only lifecycle; completed/declined/expired accept nothing
INVITATION_TRANSITIONS: dict[InvitationStatus, frozenset[InvitationStatus]] = {
    InvitationStatus.DRAFT: frozenset(
        {
            InvitationStatus.SENT,
            InvitationStatus.VIEWED,
            InvitationStatus.COMPLETED,
            InvitationStatus.DECLINED,
            InvitationStatus.EXPIRED,
        }
    ),
    InvitationStatus.SENT: frozenset(
        {
            InvitationStatus.VIEWED,
            InvitationStatus.COMPLETED,
            InvitationStatus.DECLINED,
            InvitationStatus.EXPIRED,
        }
    ),
    InvitationStatus.VIEWED: frozenset(
        {InvitationStatus.COMPLETED, InvitationStatus.DECLINED, InvitationStatus.EXPIRED}
    ),
    InvitationStatus.COMPLETED: frozenset(),
    InvitationStatus.DECLINED: frozenset(),
    InvitationStatus.EXPIRED: frozenset(),
}

OPEN_STATUSES = frozenset({InvitationStatus.SENT, InvitationStatus.VIEWED})


def can_transition(current: InvitationStatus, target: InvitationStatus) -> bool:
    return target in INVITATION_TRANSITIONS[current]


class AdvisorObservationPeriod(StrEnum):
    LESS_THAN_MONTH = "less_than_month"
    ONE_TO_SIX_MONTHS = "one_to_six_months"
    SIX_MONTHS_TO_YEAR = "six_months_to_year"
    ONE_TO_THREE_YEARS = "one_to_three_years"
    MORE_THAN_THREE_YEARS = "more_than_three_years"


OBSERVATION_PERIOD_INFO: dict[AdvisorObservationPeriod, EnumInfo] = {
    AdvisorObservationPeriod.LESS_THAN_MONTH: EnumInfo("Less than a month", "Limited but recent observation"),
    AdvisorObservationPeriod.ONE_TO_SIX_MONTHS: EnumInfo("1-6 months", "Good short-term observation"),
    AdvisorObservationPeriod.SIX_MONTHS_TO_YEAR: EnumInfo("6 months to 1 year", "Solid medium-term observation"),
    AdvisorObservationPeriod.ONE_TO_THREE_YEARS: EnumInfo("1-3 years", "Strong long-term observation"),
    AdvisorObservationPeriod.MORE_THAN_THREE_YEARS: EnumInfo(
        "More than 3 years", "Extensive long-term observation"
    ),
}

OBSERVATION_PERIOD_WEIGHT: dict[AdvisorObservationPeriod, float] = {
    AdvisorObservationPeriod.LESS_THAN_MONTH: 0.1,
    AdvisorObservationPeriod.ONE_TO_SIX_MONTHS: 0.2,
    AdvisorObservationPeriod.SIX_MONTHS_TO_YEAR: 0.3,
    AdvisorObservationPeriod.ONE_TO_THREE_YEARS: 0.4,
    AdvisorObservationPeriod.MORE_THAN_THREE_YEARS: 0.5,
}


class AdvisorConfidenceContext(StrEnum):
    VERY_CONFIDENT = "very_confident"
    CONFIDENT = "confident"
    SOMEWHAT_CONFIDENT = "somewhat_confident"
    LIMITED_OBSERVATION = "limited_observation"
    UNCERTAIN = "uncertain"


CONFIDENCE_CONTEXT_INFO: dict[AdvisorConfidenceContext, EnumInfo] = {
    AdvisorConfidenceContext.VERY_CONFIDENT: EnumInfo(
        "Very Confident", "Have worked closely and observed extensively"
    ),
    AdvisorConfidenceContext.CONFIDENT: EnumInfo(
        "Confident", "Have good observation and experience with person"
    ),
    AdvisorConfidenceContext.SOMEWHAT_CONFIDENT: EnumInfo(
        "Somewhat Confident", "Have some observation but limited context"
    ),
    AdvisorConfidenceContext.LIMITED_OBSERVATION: EnumInfo(
        "Limited Observation", "Haven't observed much but confident in what I've seen"
    ),
    AdvisorConfidenceContext.UNCERTAIN: EnumInfo(
        "Uncertain", "Don't feel I have enough information to be confident"
    ),
}

CONFIDENCE_CONTEXT_WEIGHT: dict[AdvisorConfidenceContext, float] = {
    AdvisorConfidenceContext.VERY_CONFIDENT: 0.2,
    AdvisorConfidenceContext.CONFIDENT: 0.15,
    AdvisorConfidenceContext.SOMEWHAT_CONFIDENT: 0.1,
    AdvisorConfidenceContext.LIMITED_OBSERVATION: 0.05,
    AdvisorConfidenceContext.UNCERTAIN: 0.0,
}


class CareerDomain(StrEnum):
    TECHNICAL = "technical"
    SOCIAL = "social"
    LEADERSHIP = "leadership"
    ANALYTICAL = "analytical"
    ENTREPRENEURIAL = "entrepreneurial"


class AdvisorStrengthArea(StrEnum):
    SPECIFIC_EXAMPLES = "specific_examples"
    HONEST_FEEDBACK = "honest_feedback"
    INSIGHTFUL_OBSERVATIONS = "insightful_observations"
    CONSTRUCTIVE_CRITICISM = "constructive_criticism"
    DETAILED_RESPONSES = "detailed_responses"
    CONTEXTUAL_UNDERSTANDING = "contextual_understanding"
    BALANCED_PERSPECTIVE = "balanced_perspective"
    ACTIONABLE_ADVICE = "actionable_advice"
    SUPPORTIVE_APPROACH = "supportive_approach"
    PROFESSIONAL_INSIGHT = "professional_insight"


STRENGTH_AREA_INFO: dict[AdvisorStrengthArea, EnumInfo] = {
    AdvisorStrengthArea.SPECIFIC_EXAMPLES: EnumInfo(
        "Providing Specific Examples", "Gave concrete, detailed examples"
    ),
    AdvisorStrengthArea.HONEST_FEEDBACK: EnumInfo("Honest Feedback", "Provided candid, honest assessment"),
    AdvisorStrengthArea.INSIGHTFUL_OBSERVATIONS: EnumInfo(
        "Insightful Observations", "Offered unique insights and perspectives"
    ),
    AdvisorStrengthArea.CONSTRUCTIVE_CRITICISM: EnumInfo(
        "Constructive Criticism", "Provided helpful areas for improvement"
    ),
    AdvisorStrengthArea.DETAILED_RESPONSES: EnumInfo(
        "Detailed Responses", "Gave thorough, comprehensive answers"
    ),
    AdvisorStrengthArea.CONTEXTUAL_UNDERSTANDING: EnumInfo(
        "Contextual Understanding", "Showed deep understanding of context"
    ),
    AdvisorStrengthArea.BALANCED_PERSPECTIVE: EnumInfo(
        "Balanced Perspective", "Provided balanced view of strengths and areas to develop"
    ),
    AdvisorStrengthArea.ACTIONABLE_ADVICE: EnumInfo("Actionable Advice", "Gave practical, actionable suggestions"),
    AdvisorStrengthArea.SUPPORTIVE_APPROACH: EnumInfo(
        "Supportive Approach", "Was encouraging and supportive throughout"
    ),
    AdvisorStrengthArea.PROFESSIONAL_INSIGHT: EnumInfo(
        "Professional Insight", "Demonstrated strong professional judgment"
    ),
}


class AdvisorResponseTimeliness(StrEnum):
    VERY_PROMPT = "very_prompt"
    PROMPT = "prompt"
    REASONABLE = "reasonable"
    SLOW = "slow"
    VERY_SLOW = "very_slow"


TIMELINESS_INFO: dict[AdvisorResponseTimeliness, EnumInfo] = {
    AdvisorResponseTimeliness.VERY_PROMPT: EnumInfo("Very Prompt", "Responded within 1-2 days"),
    AdvisorResponseTimeliness.PROMPT: EnumInfo("Prompt", "Responded within 3-5 days"),
    AdvisorResponseTimeliness.REASONABLE: EnumInfo("Reasonable", "Responded within a week"),
    AdvisorResponseTimeliness.SLOW: EnumInfo("Slow", "Took 1-2 weeks to respond"),
    AdvisorResponseTimeliness.VERY_SLOW: EnumInfo("Very Slow", "Took more than 2 weeks to respond"),
}


THEME_KEYWORDS: dict[str, tuple[str, ...]] = {
    "leadership": ("lead", "leadership", "manage", "guide", "direct", "mentor"),
    "technical": ("technical", "expert", "skilled", "proficient", "competent"),
    "communication": ("communicate", "explain", "present", "articulate", "discuss"),
    "collaboration": ("team", "collaborate", "work together", "partnership", "cooperative"),
    "problem_solving": ("solve", "problem", "analyse", "analyze", "solution", "resolve"),
    "reliability": ("reliable", "dependable", "consistent", "trustworthy", "punctual"),
    "creativity": ("creative", "innovative", "original", "inventive", "imaginative"),
    "initiative": ("proactive", "initiative", "self-starter", "motivated", "driven"),
    "adaptability": ("adaptable", "flexible", "adjust", "change", "versatile"),
    "attention_to_detail": ("detail", "thorough", "meticulous", "careful", "precise"),
}


def utc_now() -> datetime:
    return datetime.now(UTC)


class AdvisorInvitation(BaseModel):
    """An invitation asking one advisor for feedback on a session."""

    id: str
    session_id: str
    advisor_name: str
    advisor_email: str
    advisor_phone: str | None = None
    relationship_type: AdvisorRelationship
    personal_message: str | None = None
    include_personal_message: bool = True
    custom_questions: dict[str, str] | None = None
    status: InvitationStatus = InvitationStatus.DRAFT
    reminder_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    sent_at: datetime | None = None
    viewed_at: datetime | None = None
    completed_at: datetime | None = None
    declined_at: datetime | None = None
    reminded_at: datetime | None = None
    decline_reason: str | None = None

    @property
    def normalized_email(self) -> str:
        return self.advisor_email.strip().lower()

    def days_since_sent(self, now: datetime | None = None) -> int | None:
        if self.sent_at is None:
            return None
        return ((now or utc_now()) - self.sent_at).days

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Sent more than a week ago and still waiting."""
        days = self.days_since_sent(now)
        return self.status in OPEN_STATUSES and days is not None and days > 7

    def can_send_reminder(
        self, max_reminders: int = 3, min_days: int = 3, now: datetime | None = None
    ) -> bool:
        days = self.days_since_sent(now)
        return (
            self.status in OPEN_STATUSES
            and self.reminder_count < max_reminders
            and days is not None
            and days >= min_days
        )

    @property
    def is_high_priority_advisor(self) -> bool:
        return self.relationship_type in HIGH_PRIORITY_RELATIONSHIPS

    def status_description(self, now: datetime | None = None) -> str:
        if self.status == InvitationStatus.SENT:
            days = self.days_since_sent(now) or 0
            suffix = " - overdue" if self.is_overdue(now) else ""
            return f"Sent {days} days ago{suffix}"
        return INVITATION_STATUS_INFO[self.status].description


class AdvisorResponse(BaseModel):
    """One advisor answer to one question. Never mutated after submission."""

    id: str
    invitation_id: str
    question_id: str
    question_text: str | None = None
    domain: CareerDomain | None = None
    response: str
    confidence_level: int | None = Field(default=None, ge=1, le=5)
    response_quality_score: float = Field(ge=0.0, le=1.0)
    specific_examples: list[str] = Field(default_factory=list)
    observation_period: AdvisorObservationPeriod
    confidence_context: AdvisorConfidenceContext
    additional_context: str | None = None
    is_anonymous: bool = False
    answered_at: datetime = Field(default_factory=utc_now)

    @property
    def word_count(self) -> int:
        return len(self.response.split())

    @property
    def is_substantive_response(self) -> bool:
        clean = self.response.strip()
        return len(clean) > 30 and self.word_count > 8 and bool(self.specific_examples)

    @property
    def credibility_weight(self) -> float:
        """How much weight this answer deserves, from observation depth and confidence."""
        weight = 0.5
        weight += OBSERVATION_PERIOD_WEIGHT[self.observation_period]
        if self.confidence_level is not None:
            weight += (self.confidence_level / 5.0) * 0.3
        weight += CONFIDENCE_CONTEXT_WEIGHT[self.confidence_context]
        if self.specific_examples:
            weight += 0.1
            if len(self.specific_examples) > 2:
                weight += 0.1
        if self.is_substantive_response:
            weight += 0.1
        return max(0.0, min(1.0, weight))

    @property
    def key_themes(self) -> list[str]:
        lowered = self.response.lower()
        return [
            theme
            for theme, keywords in THEME_KEYWORDS.items()
            if any(re.search(rf"\b{re.escape(keyword)}", lowered) for keyword in keywords)
        ]


class AdvisorRating(BaseModel):
    """The user's rating of how useful an advisor's feedback was."""

    id: str
    invitation_id: str
    overall_rating: int = Field(ge=1, le=5)
    insightfulness: int = Field(ge=1, le=5)
    specificity: int = Field(ge=1, le=5)
    helpfulness: int = Field(ge=1, le=5)
    would_recommend_advisor: bool
    response_timeliness: AdvisorResponseTimeliness
    positive_aspects: str | None = None
    improvement_areas: str | None = None
    advisor_strengths: list[AdvisorStrengthArea] = Field(default_factory=list)
    additional_feedback: str | None = None
    is_anonymous_feedback: bool = False
    question_specific_ratings: dict[str, int] | None = None
    rated_at: datetime = Field(default_factory=utc_now)

    @property
    def average_rating(self) -> float:
        return (self.overall_rating + self.insightfulness + self.specificity + self.helpfulness) / 4.0

    @property
    def is_high_quality_advisor(self) -> bool:
        return self.average_rating >= 4.0 and self.would_recommend_advisor

    @property
    def overall_assessment(self) -> str:
        average = self.average_rating
        if average >= 4.5:
            return "Exceptional advisor - highly recommended"
        if average >= 4.0:
            return "Excellent advisor - recommended"
        if average >= 3.0:
            return "Good advisor - satisfactory"
        if average >= 2.0:
            return "Fair advisor - some limitations"
        return "Poor advisor - not recommended"


@dataclass(slots=True)
class AdvisorAnalytics:
    """Aggregated invitation/response metrics for a session. Not persisted."""

    total_invitations: int = 0
    completed_invitations: int = 0
    pending_invitations: int = 0
    viewed_invitations: int = 0
    declined_invitations: int = 0
    total_responses: int = 0
    average_response_quality: float = 0.0
    average_rating: float = 0.0
    relationship_type_distribution: dict[str, int] = field(default_factory=dict)
    response_time_distribution: dict[str, int] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "AdvisorAnalytics":
        return cls()

    def _rate(self, count: int) -> float:
        return count / self.total_invitations if self.total_invitations > 0 else 0.0

    @property
    def completion_rate(self) -> float:
        return self._rate(self.completed_invitations)

    @property
    def decline_rate(self) -> float:
        return self._rate(self.declined_invitations)

    @property
    def pending_rate(self) -> float:
        return self._rate(self.pending_invitations)

    def to_dict(self) -> dict:
        return {
            "total_invitations": self.total_invitations,
            "completed_invitations": self.completed_invitations,
            "pending_invitations": self.pending_invitations,
            "viewed_invitations": self.viewed_invitations,
            "declined_invitations": self.declined_invitations,
            "total_responses": self.total_responses,
            "completion_rate": self.completion_rate,
            "decline_rate": self.decline_rate,
            "pending_rate": self.pending_rate,
            "average_response_quality": self.average_response_quality,
            "average_rating": self.average_rating,
            "relationship_type_distribution": dict(self.relationship_type_distribution),
            "response_time_distribution": dict(self.response_time_distribution),
        }


@dataclass(slots=True)
class AdvisorFeedbackSummary:
    """Quality/credibility roll-up of every advisor answer in a session."""

    session_id: str
    total_invitations: int = 0
    completed_responses: int = 0
    total_responses: int = 0
    average_response_quality: float = 0.0
    average_credibility_weight: float = 0.0
    responses_by_question: dict[str, list[AdvisorResponse]] = field(default_factory=dict)
    responses_by_domain: dict[str, list[AdvisorResponse]] = field(default_factory=dict)
    top_themes: list[str] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def empty(cls, session_id: str) -> "AdvisorFeedbackSummary":
        return cls(session_id=session_id)

    @property
    def has_responses(self) -> bool:
        return self.total_responses > 0

    @property
    def response_rate(self) -> float:
        return self.completed_responses / self.total_invitations if self.total_invitations > 0 else 0.0

    @property
    def has_good_quality(self) -> bool:
        return self.average_response_quality > 0.6

    @property
    def has_high_credibility(self) -> bool:
        return self.average_credibility_weight > 0.7

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "has_responses": self.has_responses,
            "total_invitations": self.total_invitations,
            "completed_responses": self.completed_responses,
            "total_responses": self.total_responses,
            "response_rate": self.response_rate,
            "average_response_quality": self.average_response_quality,
            "average_credibility_weight": self.average_credibility_weight,
            "has_good_quality": self.has_good_quality,
            "has_high_credibility": self.has_high_credibility,
            "responses_by_question": {
                question_id: [response.model_dump(mode="json") for response in responses]
                for question_id, responses in self.responses_by_question.items()
            },
            "responses_by_domain": {
                domain: len(responses) for domain, responses in self.responses_by_domain.items()
            },
            "top_themes": list(self.top_themes),
            "insights": list(self.insights),
            "generated_at": self.generated_at.isoformat(),
        }
