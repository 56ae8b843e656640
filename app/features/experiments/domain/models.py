"""
Domain models for career experiments.

An experiment moves planned -> active -> completed, may be paused and
resumed while active, and can be cancelled until it reaches a terminal
state. Progress is always derived from the milestone list.
"""

from datetime import UTC, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, Field

from app.features.advisor_feedback.domain.models import EnumInfo


class ExperimentType(StrEnum):
    SKILL_BUILDING = "skill_building"
    NETWORKING = "networking"
    ROLE_EXPLORATION = "role_exploration"
    SIDE_PROJECT = "side_project"
    INFORMATIONAL_INTERVIEW = "informational_interview"
    SHADOWING = "shadowing"
    COURSE = "course"
    VOLUNTEERING = "volunteering"


EXPERIMENT_TYPE_INFO: dict[ExperimentType, EnumInfo] = {
    ExperimentType.SKILL_BUILDING: EnumInfo("Skill Building", "Develop a specific capability"),
    ExperimentType.NETWORKING: EnumInfo("Networking", "Build relationships in a target area"),
    ExperimentType.ROLE_EXPLORATION: EnumInfo("Role Exploration", "Try out the work of a different role"),
    ExperimentType.SIDE_PROJECT: EnumInfo("Side Project", "Ship something small outside your day job"),
    ExperimentType.INFORMATIONAL_INTERVIEW: EnumInfo(
        "Informational Interview", "Learn from someone already doing the work"
    ),
    ExperimentType.SHADOWING: EnumInfo("Job Shadowing", "Observe a role up close"),
    ExperimentType.COURSE: EnumInfo("Course or Workshop", "Structured learning with a clear end"),
    ExperimentType.VOLUNTEERING: EnumInfo("Volunteering", "Test an interest through unpaid work"),
}


class ExperimentStatus(StrEnum):
    PLANNED = "planned"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


EXPERIMENT_STATUS_INFO: dict[ExperimentStatus, EnumInfo] = {
    ExperimentStatus.PLANNED: EnumInfo("Planned", "Ready to start"),
    ExperimentStatus.ACTIVE: EnumInfo("Active", "Currently in progress"),
    ExperimentStatus.PAUSED: EnumInfo("Paused", "Temporarily on hold"),
    ExperimentStatus.COMPLETED: EnumInfo("Completed", "Finished successfully"),
    ExperimentStatus.CANCELLED: EnumInfo("Cancelled", "Stopped before completion"),
}

# completed/cancelled are terminal
EXPERIMENT_TRANSITIONS: dict[ExperimentStatus, frozenset[ExperimentStatus]] = {
    ExperimentStatus.PLANNED: frozenset({ExperimentStatus.ACTIVE, ExperimentStatus.CANCELLED}),
    ExperimentStatus.ACTIVE: frozenset(
        {ExperimentStatus.PAUSED, ExperimentStatus.COMPLETED, ExperimentStatus.CANCELLED}
    ),
    ExperimentStatus.PAUSED: frozenset({ExperimentStatus.ACTIVE, ExperimentStatus.CANCELLED}),
    ExperimentStatus.COMPLETED: frozenset(),
    ExperimentStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({ExperimentStatus.COMPLETED, ExperimentStatus.CANCELLED})


def can_transition(current: ExperimentStatus, target: ExperimentStatus) -> bool:
    return target in EXPERIMENT_TRANSITIONS[current]


class ExperimentScope(StrEnum):
    MICRO = "micro"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


EXPERIMENT_SCOPE_INFO: dict[ExperimentScope, EnumInfo] = {
    ExperimentScope.MICRO: EnumInfo("Micro (1-3 days)", "A quick test you can run this week"),
    ExperimentScope.SMALL: EnumInfo("Small (1-2 weeks)", "A short, contained trial"),
    ExperimentScope.MEDIUM: EnumInfo("Medium (1-2 months)", "A sustained effort alongside work"),
    ExperimentScope.LARGE: EnumInfo("Large (3+ months)", "A significant commitment"),
}


class ExperimentPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


EXPERIMENT_PRIORITY_INFO: dict[ExperimentPriority, EnumInfo] = {
    ExperimentPriority.LOW: EnumInfo("Low Priority", "Nice to try when time allows"),
    ExperimentPriority.MEDIUM: EnumInfo("Medium Priority", "Worth scheduling soon"),
    ExperimentPriority.HIGH: EnumInfo("High Priority", "Start as soon as possible"),
}


class ExperimentComplexity(StrEnum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


def utc_now() -> datetime:
    return datetime.now(UTC)


class Milestone(BaseModel):
    id: str
    title: str = Field(..., min_length=1, max_length=200)
    completed: bool = False
    completed_at: datetime | None = None


def calculate_progress(milestones: list[Milestone]) -> float:
    """Fraction of milestones completed; 0.0 when there are none."""
    if not milestones:
        return 0.0
    return sum(1 for milestone in milestones if milestone.completed) / len(milestones)


class CareerExperiment(BaseModel):
    id: str
    session_id: str
    title: str
    description: str = ""
    type: ExperimentType
    hypothesis: str | None = None
    status: ExperimentStatus = ExperimentStatus.PLANNED
    scope: ExperimentScope = ExperimentScope.SMALL
    priority: ExperimentPriority = ExperimentPriority.MEDIUM
    estimated_duration_days: int = Field(14, ge=1)
    success_criteria: list[str] = Field(default_factory=list)
    required_resources: list[str] = Field(default_factory=list)
    potential_barriers: list[str] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    learnings: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = None
    paused_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @property
    def progress(self) -> float:
        return calculate_progress(self.milestones)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def complexity(self) -> ExperimentComplexity:
        # Rough effort signal from duration and what the user must line up
        score = len(self.required_resources) + len(self.potential_barriers)
        if self.estimated_duration_days > 60 or score >= 6:
            return ExperimentComplexity.COMPLEX
        if self.estimated_duration_days > 14 or score >= 3:
            return ExperimentComplexity.MODERATE
        return ExperimentComplexity.SIMPLE

    @property
    def due_at(self) -> datetime | None:
        if self.started_at is None:
            return None
        return self.started_at + timedelta(days=self.estimated_duration_days)

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.status != ExperimentStatus.ACTIVE or self.due_at is None:
            return False
        return (now or utc_now()) > self.due_at

    def days_remaining(self, now: datetime | None = None) -> int | None:
        if self.due_at is None or self.is_terminal:
            return None
        return max(0, (self.due_at - (now or utc_now())).days)
