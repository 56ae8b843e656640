"""
Service layer for the career experiments feature.
"""

from .experiment_service import ExperimentService

__all__ = ["ExperimentService"]
