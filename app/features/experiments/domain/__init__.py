"""
Domain subpackage for the career experiments feature.
"""

from .errors import (
    ExperimentClosed,
    ExperimentNotFound,
    ExperimentPersistenceError,
    ExperimentServiceError,
    ExperimentValidationError,
    InvalidExperimentTransition,
    MilestoneNotFound,
)
from .models import (
    CareerExperiment,
    ExperimentComplexity,
    ExperimentPriority,
    ExperimentScope,
    ExperimentStatus,
    ExperimentType,
    Milestone,
    calculate_progress,
)

__all__ = [
    "CareerExperiment",
    "ExperimentClosed",
    "ExperimentComplexity",
    "ExperimentNotFound",
    "ExperimentPersistenceError",
    "ExperimentPriority",
    "ExperimentScope",
    "ExperimentServiceError",
    "ExperimentStatus",
    "ExperimentType",
    "ExperimentValidationError",
    "InvalidExperimentTransition",
    "Milestone",
    "MilestoneNotFound",
    "calculate_progress",
]
