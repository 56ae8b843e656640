from datetime import timedelta

import pytest

from app.features.experiments.domain.errors import (
    ExperimentClosed,
    ExperimentNotFound,
    ExperimentValidationError,
    InvalidExperimentTransition,
    MilestoneNotFound,
)
from app.features.experiments.domain.models import (
    ExperimentComplexity,
    ExperimentStatus,
    Milestone,
    calculate_progress,
)


async def _create(service, **kwargs):
    return await service.create_experiment(
        session_id=kwargs.pop("session_id", "session-1"),
        title=kwargs.pop("title", "Run the next sprint retro"),
        experiment_type=kwargs.pop("experiment_type", "role_exploration"),
        milestones=kwargs.pop("milestones", ["Book the room", "Run the retro", "Collect feedback"]),
        **kwargs,
    )


def test_calculate_progress():
    assert calculate_progress([]) == 0.0
    milestones = [
        Milestone(id="m1", title="one", completed=True),
        Milestone(id="m2", title="two"),
        Milestone(id="m3", title="three"),
        Milestone(id="m4", title="four", completed=True),
    ]
    assert calculate_progress(milestones) == 0.5


@pytest.mark.asyncio
async def test_create_experiment_is_planned(experiment_service, clock):
    experiment = await _create(experiment_service)

    assert experiment.status == ExperimentStatus.PLANNED
    assert experiment.created_at == clock.now
    assert [milestone.title for milestone in experiment.milestones] == [
        "Book the room",
        "Run the retro",
        "Collect feedback",
    ]
    assert experiment.progress == 0.0
    assert experiment.complexity == ExperimentComplexity.SIMPLE
    assert await experiment_service.get_experiment_by_id(experiment.id) == experiment


@pytest.mark.asyncio
async def test_create_experiment_validation(experiment_service):
    with pytest.raises(ExperimentValidationError) as exc_info:
        await experiment_service.create_experiment(
            session_id="", title="  ", experiment_type="time_travel", estimated_duration_days=0
        )

    assert len(exc_info.value.errors) == 4


@pytest.mark.asyncio
async def test_lifecycle_with_pause_and_resume(experiment_service, clock):
    experiment = await _create(experiment_service)

    started = await experiment_service.start_experiment(experiment.id)
    assert started.status == ExperimentStatus.ACTIVE
    assert started.started_at == clock.now

    clock.advance(days=2)
    paused = await experiment_service.pause_experiment(experiment.id)
    assert paused.status == ExperimentStatus.PAUSED
    assert paused.paused_at == clock.now

    clock.advance(days=1)
    resumed = await experiment_service.resume_experiment(experiment.id)
    assert resumed.status == ExperimentStatus.ACTIVE
    assert resumed.started_at == started.started_at
    assert resumed.paused_at is None

    completed = await experiment_service.complete_experiment(experiment.id, learnings="Facilitation suits me")
    assert completed.status == ExperimentStatus.COMPLETED
    assert completed.completed_at == clock.now
    assert completed.learnings == "Facilitation suits me"


@pytest.mark.asyncio
async def test_invalid_transitions(experiment_service):
    experiment = await _create(experiment_service)

    with pytest.raises(InvalidExperimentTransition):
        await experiment_service.pause_experiment(experiment.id)
    with pytest.raises(InvalidExperimentTransition):
        await experiment_service.resume_experiment(experiment.id)
    with pytest.raises(InvalidExperimentTransition):
        await experiment_service.complete_experiment(experiment.id)

    await experiment_service.start_experiment(experiment.id)
    with pytest.raises(InvalidExperimentTransition):
        await experiment_service.start_experiment(experiment.id)

    await experiment_service.pause_experiment(experiment.id)
    with pytest.raises(InvalidExperimentTransition):
        await experiment_service.start_experiment(experiment.id)


@pytest.mark.asyncio
async def test_terminal_states_accept_nothing(experiment_service):
    cancelled = await _create(experiment_service)
    await experiment_service.cancel_experiment(cancelled.id)

    for action in (
        experiment_service.start_experiment,
        experiment_service.resume_experiment,
        experiment_service.cancel_experiment,
    ):
        with pytest.raises(InvalidExperimentTransition):
            await action(cancelled.id)

    stored = await experiment_service.get_experiment_by_id(cancelled.id)
    assert stored.status == ExperimentStatus.CANCELLED
    assert stored.cancelled_at is not None


@pytest.mark.asyncio
async def test_milestones_drive_progress(experiment_service, clock):
    experiment = await _create(experiment_service, milestones=["one", "two", "three", "four"])
    first, second = experiment.milestones[0].id, experiment.milestones[1].id

    updated = await experiment_service.set_milestone_completed(experiment.id, first)
    assert updated.progress == 0.25
    assert updated.milestones[0].completed_at == clock.now

    updated = await experiment_service.set_milestone_completed(experiment.id, second)
    assert updated.progress == 0.5

    updated = await experiment_service.set_milestone_completed(experiment.id, first, completed=False)
    assert updated.progress == 0.25
    assert updated.milestones[0].completed_at is None

    with pytest.raises(MilestoneNotFound):
        await experiment_service.set_milestone_completed(experiment.id, "nope")


@pytest.mark.asyncio
async def test_milestones_frozen_after_completion(experiment_service):
    experiment = await _create(experiment_service)
    await experiment_service.start_experiment(experiment.id)
    await experiment_service.complete_experiment(experiment.id)

    with pytest.raises(ExperimentClosed):
        await experiment_service.set_milestone_completed(experiment.id, experiment.milestones[0].id)


@pytest.mark.asyncio
async def test_unknown_experiment(experiment_service):
    assert await experiment_service.get_experiment_by_id("missing") is None

    with pytest.raises(ExperimentNotFound):
        await experiment_service.start_experiment("missing")
    with pytest.raises(ExperimentNotFound):
        await experiment_service.set_milestone_completed("missing", "m1")


@pytest.mark.asyncio
async def test_session_listing_oldest_first(experiment_service, clock):
    first = await _create(experiment_service, title="First")
    clock.advance(hours=1)
    second = await _create(experiment_service, title="Second")
    await _create(experiment_service, session_id="session-2")

    listed = await experiment_service.get_experiments_for_session("session-1")

    assert [experiment.id for experiment in listed] == [first.id, second.id]


@pytest.mark.asyncio
async def test_overdue_only_while_active(experiment_service, clock):
    experiment = await _create(experiment_service, estimated_duration_days=7)
    started = await experiment_service.start_experiment(experiment.id)

    assert not started.is_overdue(clock.now)
    assert started.days_remaining(clock.now) == 7
    assert started.is_overdue(clock.now + timedelta(days=8))
