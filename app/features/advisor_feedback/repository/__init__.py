"""
Repository subpackage for the advisor feedback feature.
"""

from .advisor_repository import AdvisorRepository, register_advisor_schemas

__all__ = ["AdvisorRepository", "register_advisor_schemas"]
