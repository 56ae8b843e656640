# app/models/api/experiment_response.py
"""
Experiment API response models.
"""

from datetime import datetime

from pydantic import BaseModel

from app.features.experiments.domain.models import (
    EXPERIMENT_STATUS_INFO,
    EXPERIMENT_TYPE_INFO,
    CareerExperiment,
    Milestone,
)


class ExperimentResponse(BaseModel):
    id: str
    session_id: str
    title: str
    description: str
    type: str
    type_display_name: str
    hypothesis: str | None = None
    status: str
    status_display_name: str
    scope: str
    priority: str
    complexity: str
    estimated_duration_days: int
    success_criteria: list[str]
    milestones: list[Milestone]
    progress: float
    learnings: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    is_overdue: bool

    @classmethod
    def from_domain(cls, experiment: CareerExperiment) -> "ExperimentResponse":
        return cls(
            id=experiment.id,
            session_id=experiment.session_id,
            title=experiment.title,
            description=experiment.description,
            type=experiment.type.value,
            type_display_name=EXPERIMENT_TYPE_INFO[experiment.type].display_name,
            hypothesis=experiment.hypothesis,
            status=experiment.status.value,
            status_display_name=EXPERIMENT_STATUS_INFO[experiment.status].display_name,
            scope=experiment.scope.value,
            priority=experiment.priority.value,
            complexity=experiment.complexity.value,
            estimated_duration_days=experiment.estimated_duration_days,
            success_criteria=experiment.success_criteria,
            milestones=experiment.milestones,
            progress=experiment.progress,
            learnings=experiment.learnings,
            created_at=experiment.created_at,
            started_at=experiment.started_at,
            completed_at=experiment.completed_at,
            is_overdue=experiment.is_overdue(),
        )


class ExperimentListResponse(BaseModel):
    experiments: list[ExperimentResponse]
    total_count: int
