"""
Repository subpackage for the career experiments feature.
"""

from .experiment_repository import ExperimentRepository, register_experiment_schemas

__all__ = ["ExperimentRepository", "register_experiment_schemas"]
