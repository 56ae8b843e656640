"""Experiment service error taxonomy (mapped to HTTP codes by error_type)."""


class ExperimentServiceError(Exception):
    """Base exception for experiment operations."""

    error_type = "experiment_service_error"

    def __init__(self, message: str, experiment_id: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.experiment_id = experiment_id
        self.recoverable = recoverable


class ExperimentNotFound(ExperimentServiceError):
    error_type = "experiment_not_found"

    def __init__(self, experiment_id: str):
        super().__init__(f"Experiment not found: {experiment_id}", experiment_id, recoverable=False)


class MilestoneNotFound(ExperimentServiceError):
    error_type = "milestone_not_found"

    def __init__(self, experiment_id: str, milestone_id: str):
        super().__init__(f"Milestone not found: {milestone_id}", experiment_id, recoverable=False)
        self.milestone_id = milestone_id


class InvalidExperimentTransition(ExperimentServiceError):
    error_type = "invalid_experiment_transition"

    def __init__(self, experiment_id: str, current: str, target: str):
        super().__init__(
            f"Cannot move experiment from {current} to {target}", experiment_id, recoverable=False
        )
        self.current = current
        self.target = target


class ExperimentClosed(ExperimentServiceError):
    """Milestones cannot change once an experiment is completed or cancelled."""

    error_type = "experiment_closed"

    def __init__(self, experiment_id: str, current: str):
        super().__init__(f"Experiment is {current}", experiment_id, recoverable=False)


class ExperimentValidationError(ExperimentServiceError):
    error_type = "experiment_validation_failed"

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class ExperimentPersistenceError(ExperimentServiceError):
    error_type = "persistence_error"
