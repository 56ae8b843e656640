# app/models/api/experiment_request.py
"""
Experiment API request models.
"""

from pydantic import BaseModel, Field

from app.features.experiments.domain.models import (
    ExperimentPriority,
    ExperimentScope,
    ExperimentType,
)


class CreateExperimentRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=200)
    title: str = Field(..., min_length=1, max_length=200)
    type: ExperimentType
    description: str = Field("", max_length=4000)
    hypothesis: str | None = Field(None, max_length=2000)
    scope: ExperimentScope = ExperimentScope.SMALL
    priority: ExperimentPriority = ExperimentPriority.MEDIUM
    estimated_duration_days: int = Field(14, ge=1, le=365)
    success_criteria: list[str] = Field(default_factory=list)
    required_resources: list[str] = Field(default_factory=list)
    potential_barriers: list[str] = Field(default_factory=list)
    milestones: list[str] = Field(default_factory=list, description="Milestone titles, in order")


class CompleteExperimentRequest(BaseModel):
    learnings: str | None = Field(None, max_length=4000)


class MilestoneUpdateRequest(BaseModel):
    completed: bool = True
