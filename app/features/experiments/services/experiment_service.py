"""
Experiment Service - lifecycle and milestone tracking for career experiments.

Status changes follow EXPERIMENT_TRANSITIONS; every mutation holds the
`experiment:<id>` lock and re-reads the record before writing.
"""

import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from app.db.record_store import RecordStore, RecordStoreError
from app.db.schema_registry import SchemaRegistry
from app.features.experiments.domain.errors import (
    ExperimentClosed,
    ExperimentNotFound,
    ExperimentPersistenceError,
    ExperimentValidationError,
    InvalidExperimentTransition,
    MilestoneNotFound,
)
from app.features.experiments.domain.models import (
    CareerExperiment,
    ExperimentPriority,
    ExperimentScope,
    ExperimentStatus,
    ExperimentType,
    Milestone,
    can_transition,
    utc_now,
)
from app.features.experiments.repository.experiment_repository import (
    ExperimentRepository,
    experiment_lock_name,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def _store_errors(operation: str, experiment_id: str | None = None) -> Iterator[None]:
    try:
        yield
    except RecordStoreError as e:
        logger.error(
            "Experiment record store operation failed",
            operation=operation,
            experiment_id=experiment_id,
            error=str(e),
        )
        raise ExperimentPersistenceError(
            f"{operation} failed: {e}", experiment_id, e.recoverable
        ) from e


class ExperimentService:
    """Creates experiments and moves them through their lifecycle."""

    def __init__(
        self,
        store: RecordStore,
        registry: SchemaRegistry,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = ExperimentRepository(store, registry)
        self.store = store
        self._clock = clock

    async def create_experiment(
        self,
        session_id: str,
        title: str,
        experiment_type: ExperimentType | str,
        description: str = "",
        hypothesis: str | None = None,
        scope: ExperimentScope | str = ExperimentScope.SMALL,
        priority: ExperimentPriority | str = ExperimentPriority.MEDIUM,
        estimated_duration_days: int = 14,
        success_criteria: list[str] | None = None,
        required_resources: list[str] | None = None,
        potential_barriers: list[str] | None = None,
        milestones: list[str] | None = None,
    ) -> CareerExperiment:
        """
        Create a planned experiment. `milestones` are titles, in order.

        Raises:
            ExperimentValidationError: missing session/title, unknown enums, bad duration
        """
        session_id = (session_id or "").strip()
        title = (title or "").strip()

        errors = []
        if not session_id:
            errors.append("Session ID is required")
        if not title:
            errors.append("Title is required")
        if estimated_duration_days < 1:
            errors.append("Estimated duration must be at least one day")
        try:
            experiment_type = ExperimentType(experiment_type)
            scope = ExperimentScope(scope)
            priority = ExperimentPriority(priority)
        except ValueError as e:
            errors.append(str(e))
        milestone_titles = [t.strip() for t in milestones or [] if t and t.strip()]
        if errors:
            raise ExperimentValidationError(errors)

        experiment_id = f"experiment_{uuid.uuid4().hex}"
        experiment = CareerExperiment(
            id=experiment_id,
            session_id=session_id,
            title=title,
            description=description,
            type=experiment_type,
            hypothesis=hypothesis,
            scope=scope,
            priority=priority,
            estimated_duration_days=estimated_duration_days,
            success_criteria=success_criteria or [],
            required_resources=required_resources or [],
            potential_barriers=potential_barriers or [],
            milestones=[
                Milestone(id=f"{experiment_id}:m{index}", title=milestone_title)
                for index, milestone_title in enumerate(milestone_titles, start=1)
            ],
            created_at=self._clock(),
        )
        with _store_errors("create_experiment", experiment_id):
            await self.repository.save_experiment(experiment)

        logger.info(
            "Career experiment created",
            experiment_id=experiment_id,
            session_id=session_id,
            experiment_type=experiment_type.value,
            milestone_count=len(experiment.milestones),
        )
        return experiment

    async def get_experiment_by_id(self, experiment_id: str) -> CareerExperiment | None:
        with _store_errors("get_experiment_by_id", experiment_id):
            return await self.repository.get_experiment(experiment_id)

    async def get_experiments_for_session(self, session_id: str) -> list[CareerExperiment]:
        with _store_errors("get_experiments_for_session"):
            return await self.repository.list_experiments_for_session(session_id)

    async def _transition(
        self,
        experiment_id: str,
        target: ExperimentStatus,
        learnings: str | None = None,
        required_status: ExperimentStatus | None = None,
    ) -> CareerExperiment:
        with _store_errors(f"transition_to_{target}", experiment_id):
            async with self.store.lock(experiment_lock_name(experiment_id)):
                experiment = await self.repository.get_experiment(experiment_id)
                if experiment is None:
                    raise ExperimentNotFound(experiment_id)
                if not can_transition(experiment.status, target) or (
                    required_status is not None and experiment.status != required_status
                ):
                    raise InvalidExperimentTransition(experiment_id, experiment.status, target)

                now = self._clock()
                previous = experiment.status
                experiment.status = target
                if target == ExperimentStatus.ACTIVE:
                    if experiment.started_at is None:
                        experiment.started_at = now
                    experiment.paused_at = None
                elif target == ExperimentStatus.PAUSED:
                    experiment.paused_at = now
                elif target == ExperimentStatus.COMPLETED:
                    experiment.completed_at = now
                    experiment.paused_at = None
                elif target == ExperimentStatus.CANCELLED:
                    experiment.cancelled_at = now
                if learnings:
                    experiment.learnings = learnings
                await self.repository.save_experiment(experiment)

        logger.info(
            "Career experiment status changed",
            experiment_id=experiment_id,
            from_status=previous,
            to_status=target,
        )
        return experiment

    async def start_experiment(self, experiment_id: str) -> CareerExperiment:
        return await self._transition(
            experiment_id, ExperimentStatus.ACTIVE, required_status=ExperimentStatus.PLANNED
        )

    async def pause_experiment(self, experiment_id: str) -> CareerExperiment:
        return await self._transition(experiment_id, ExperimentStatus.PAUSED)

    async def resume_experiment(self, experiment_id: str) -> CareerExperiment:
        # Resume only means paused -> active; planned experiments go through start
        return await self._transition(
            experiment_id, ExperimentStatus.ACTIVE, required_status=ExperimentStatus.PAUSED
        )

    async def complete_experiment(
        self, experiment_id: str, learnings: str | None = None
    ) -> CareerExperiment:
        return await self._transition(experiment_id, ExperimentStatus.COMPLETED, learnings)

    async def cancel_experiment(self, experiment_id: str) -> CareerExperiment:
        return await self._transition(experiment_id, ExperimentStatus.CANCELLED)

    async def set_milestone_completed(
        self, experiment_id: str, milestone_id: str, completed: bool = True
    ) -> CareerExperiment:
        """
        Mark one milestone done (or not done) and return the updated experiment.

        Raises:
            ExperimentNotFound, MilestoneNotFound
            ExperimentClosed: the experiment is completed or cancelled
        """
        with _store_errors("set_milestone_completed", experiment_id):
            async with self.store.lock(experiment_lock_name(experiment_id)):
                experiment = await self.repository.get_experiment(experiment_id)
                if experiment is None:
                    raise ExperimentNotFound(experiment_id)
                if experiment.is_terminal:
                    raise ExperimentClosed(experiment_id, experiment.status)

                milestone = next((m for m in experiment.milestones if m.id == milestone_id), None)
                if milestone is None:
                    raise MilestoneNotFound(experiment_id, milestone_id)

                milestone.completed = completed
                milestone.completed_at = self._clock() if completed else None
                await self.repository.save_experiment(experiment)

        logger.info(
            "Experiment milestone updated",
            experiment_id=experiment_id,
            milestone_id=milestone_id,
            completed=completed,
            progress=experiment.progress,
        )
        return experiment
