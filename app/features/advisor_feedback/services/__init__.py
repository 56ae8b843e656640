"""
Service layer for the advisor feedback feature.
"""

from .advisor_service import AdvisorService
from .email_service import (
    EmailDispatcher,
    LoggingEmailDispatcher,
    SendGridEmailDispatcher,
    build_email_dispatcher,
)

__all__ = [
    "AdvisorService",
    "EmailDispatcher",
    "LoggingEmailDispatcher",
    "SendGridEmailDispatcher",
    "build_email_dispatcher",
]
