"""
Security helpers for the advisor invitation flow.

Covers the abuse surface of a feature that sends email to third parties on a
user's behalf: syntactic checks on addresses and tokens, per-client rate
limits, heuristics for disposable/automated addresses and bot traffic, and
unguessable invitation ids.

Heuristic findings (disposable domains, bot user agents, spammy text) are
reported as warnings and logged as security events; only malformed input and
exhausted rate limits are errors.
"""

from __future__ import annotations

import re
import secrets
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from app.config import settings
from app.features.advisor_feedback.domain.models import AdvisorInvitation, InvitationStatus, utc_now
from app.infrastructure.observability.logging import get_logger
from app.middleware.rate_limiter import RateLimiter, RateLimitResult, rate_limiter

logger = get_logger(__name__)

__all__ = [
    "SecurityValidationResult",
    "check_invitation_rate_limit",
    "check_response_rate_limit",
    "validate_invitation_creation",
    "validate_response_access",
    "validate_response_content",
    "generate_secure_token",
    "is_valid_email",
    "is_valid_invitation_token",
    "is_invitation_valid",
    "sanitise_input",
    "log_security_event",
]

MAX_EMAIL_LENGTH = 254
MAX_RESPONSE_LENGTH = 2000

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
INVITATION_TOKEN_PATTERN = re.compile(r"^invitation_\d{13}_[a-f0-9]{16}$")
AUTOMATED_EMAIL_PATTERN = re.compile(r"^[a-z]+\d+@")

DISPOSABLE_EMAIL_DOMAINS = frozenset(
    {
        "tempmail.org",
        "10minutemail.com",
        "guerrillamail.com",
        "mailinator.com",
        "throwaway.email",
        "temp-mail.org",
    }
)

BOT_USER_AGENT_MARKERS = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "curl",
    "wget",
    "python-requests",
    "urllib",
    "axios",
    "postman",
)

SPAM_PATTERNS = (
    re.compile(r"https?://\S+"),
    re.compile(r"\b(?:viagra|cialis|pharmacy|casino|bitcoin|crypto)\b", re.IGNORECASE),
    re.compile(r"\b(?:click here|visit now|buy now|free money)\b", re.IGNORECASE),
    re.compile(r"(.)\1{10,}"),
)

GENERATED_TEXT_MARKERS = (
    "as an ai",
    "i am an artificial",
    "as a language model",
    "i cannot provide",
    "i apologize, but i cannot",
    "generated response",
    "artificial intelligence",
)


@dataclass(slots=True)
class SecurityValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    rate_limit: RateLimitResult | None = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def is_valid_email(email: str | None) -> bool:
    if not email:
        return False
    return len(email) <= MAX_EMAIL_LENGTH and EMAIL_PATTERN.match(email) is not None


def is_valid_invitation_token(token: str | None) -> bool:
    return bool(token) and INVITATION_TOKEN_PATTERN.match(token) is not None


def generate_secure_token(prefix: str = "invitation_") -> str:
    """
    Generate an unguessable id: `<prefix><13-digit epoch millis>_<16 hex chars>`.

    The random half comes from the `secrets` CSPRNG (64 bits), so ids minted
    in the same millisecond still differ.
    """
    return f"{prefix}{int(time.time() * 1000)}_{secrets.token_hex(8)}"


async def check_invitation_rate_limit(
    client_identifier: str, limiter: RateLimiter | None = None
) -> RateLimitResult:
    """Count one invitation attempt for `client_identifier` (atomic check-and-increment)."""
    return await (limiter or rate_limiter).check_invitation_rate_limit(client_identifier)


async def check_response_rate_limit(
    client_identifier: str, limiter: RateLimiter | None = None
) -> RateLimitResult:
    """Count one response submission attempt for `client_identifier`."""
    return await (limiter or rate_limiter).check_response_rate_limit(client_identifier)


async def validate_invitation_creation(
    session_id: str,
    advisor_email: str,
    user_ip_address: str,
    limiter: RateLimiter | None = None,
) -> SecurityValidationResult:
    """
    Aggregate every pre-flight check for creating an invitation.

    Errors: empty session id, malformed email, exhausted rate limit.
    Warnings: disposable email domain, automated-looking address.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not session_id or not session_id.strip():
        errors.append("Session ID is required")

    if not is_valid_email(advisor_email):
        errors.append("Invalid email address format")
    else:
        warnings.extend(_suspicious_email_warnings(advisor_email, user_ip_address))

    rate_limit = await check_invitation_rate_limit(user_ip_address, limiter)
    if not rate_limit.allowed:
        errors.append("Too many invitation attempts. Please wait before sending more invitations.")
        log_security_event(
            "invitation_rate_limited",
            "Invitation creation rate limit exceeded",
            ip_address=user_ip_address,
            metadata={"retry_after": rate_limit.retry_after},
        )

    return SecurityValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        rate_limit=rate_limit,
    )


async def validate_response_access(
    invitation_id: str,
    user_agent: str | None,
    ip_address: str,
    limiter: RateLimiter | None = None,
) -> SecurityValidationResult:
    """Screen a response submission: token shape, bot user agent, response rate limit."""
    errors: list[str] = []
    warnings: list[str] = []

    if not is_valid_invitation_token(invitation_id):
        errors.append("Invalid invitation link format")
        log_security_event(
            "invalid_invitation_token",
            "Malformed invitation id presented",
            ip_address=ip_address,
            user_agent=user_agent,
            metadata={"invitation_id": invitation_id[:64]},
        )

    if _is_potential_bot(user_agent):
        warnings.append("Potential automated access detected")
        log_security_event(
            "potential_bot_access",
            "Bot-like user agent on invitation response",
            ip_address=ip_address,
            user_agent=user_agent,
        )

    rate_limit = await check_response_rate_limit(ip_address, limiter)
    if not rate_limit.allowed:
        errors.append("Too many response attempts. Please wait before trying again.")

    return SecurityValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        rate_limit=rate_limit,
    )


def validate_response_content(
    responses: Mapping[str, str], ip_address: str | None = None
) -> SecurityValidationResult:
    """Content heuristics over submitted answers. Never produces errors."""
    warnings: list[str] = []

    for question_id, text in responses.items():
        if any(pattern.search(text) for pattern in SPAM_PATTERNS):
            warnings.append(f"Response to {question_id} contains potential spam patterns")
            log_security_event(
                "spam_pattern",
                "Spam patterns detected in advisor response",
                ip_address=ip_address,
                metadata={"question_id": question_id},
            )

        lowered = text.lower()
        if any(marker in lowered for marker in GENERATED_TEXT_MARKERS):
            warnings.append(f"Response to {question_id} may be machine-generated")

        if len(text) > MAX_RESPONSE_LENGTH:
            warnings.append(f"Response to {question_id} is unusually long")

    return SecurityValidationResult(is_valid=True, warnings=warnings)


def is_invitation_valid(invitation: AdvisorInvitation, now: datetime | None = None) -> bool:
    """Open for responses: inside the expiry window and not declined/expired."""
    if invitation.status in (InvitationStatus.DECLINED, InvitationStatus.EXPIRED):
        return False
    started = invitation.sent_at or invitation.created_at
    expires_at = started + timedelta(days=settings.ADVISOR_INVITATION_EXPIRY_DAYS)
    return (now or utc_now()) < expires_at


def sanitise_input(text: str) -> str:
    """Strip HTML tags and unusual punctuation, collapse whitespace."""
    cleaned = re.sub(r"<[^>]*>", "", text.strip())
    cleaned = re.sub(r"[^\w\s.,!?@-]", "", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def log_security_event(
    event_type: str,
    description: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    logger.warning(
        "Security event",
        event_type=event_type,
        description=description,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata=metadata or {},
    )


def _suspicious_email_warnings(email: str, ip_address: str | None) -> list[str]:
    warnings = []
    lowered = email.lower()

    domain = lowered.rsplit("@", 1)[-1]
    if domain in DISPOSABLE_EMAIL_DOMAINS:
        warnings.append("Disposable email domain detected")
        log_security_event(
            "disposable_email",
            "Disposable email domain used for advisor invitation",
            ip_address=ip_address,
            metadata={"domain": domain},
        )

    if AUTOMATED_EMAIL_PATTERN.match(lowered):
        warnings.append("Potentially automated email pattern")

    return warnings


def _is_potential_bot(user_agent: str | None) -> bool:
    if not user_agent:
        return True
    lowered = user_agent.lower()
    return any(marker in lowered for marker in BOT_USER_AGENT_MARKERS)
