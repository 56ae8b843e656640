from datetime import timedelta

import pytest

from app.features.advisor_feedback.domain.models import AdvisorInvitation, InvitationStatus
from app.security.advisor_security import (
    generate_secure_token,
    is_invitation_valid,
    is_valid_email,
    is_valid_invitation_token,
    sanitise_input,
    validate_invitation_creation,
    validate_response_access,
    validate_response_content,
)


def _invitation(clock, **overrides) -> AdvisorInvitation:
    fields = {
        "id": generate_secure_token(),
        "session_id": "session-1",
        "advisor_name": "Ada",
        "advisor_email": "ada@example.com",
        "relationship_type": "mentor",
        "created_at": clock(),
    }
    fields.update(overrides)
    return AdvisorInvitation(**fields)


def test_generated_tokens_are_unique_and_well_formed():
    tokens = {generate_secure_token() for _ in range(10_000)}

    assert len(tokens) == 10_000
    assert all(is_valid_invitation_token(token) for token in tokens)


def test_invitation_token_shape():
    assert not is_valid_invitation_token("invitation_123_abc")
    assert not is_valid_invitation_token("")
    assert not is_valid_invitation_token(None)


def test_email_syntax():
    assert is_valid_email("ada.lovelace+advisor@example.co.uk")
    assert not is_valid_email("not-an-email")
    assert not is_valid_email("ada@localhost")
    assert not is_valid_email(None)
    assert not is_valid_email("a" * 250 + "@example.com")


@pytest.mark.asyncio
async def test_invitation_creation_warns_on_disposable_domain(limiter):
    result = await validate_invitation_creation("session-1", "someone@mailinator.com", "203.0.113.7", limiter)

    assert result.is_valid
    assert "Disposable email domain detected" in result.warnings
    assert result.rate_limit.allowed


@pytest.mark.asyncio
async def test_invitation_creation_errors(limiter):
    result = await validate_invitation_creation(" ", "broken", "203.0.113.7", limiter)

    assert not result.is_valid
    assert result.errors == ["Session ID is required", "Invalid email address format"]


@pytest.mark.asyncio
async def test_invitation_creation_rate_limited_after_ten_attempts(limiter):
    for _ in range(10):
        result = await validate_invitation_creation("session-1", "ada@example.com", "203.0.113.7", limiter)
        assert result.is_valid

    blocked = await validate_invitation_creation("session-1", "ada@example.com", "203.0.113.7", limiter)

    assert not blocked.is_valid
    assert not blocked.rate_limit.allowed
    assert blocked.rate_limit.retry_after == 3600

    other_ip = await validate_invitation_creation("session-1", "ada@example.com", "198.51.100.2", limiter)
    assert other_ip.is_valid


@pytest.mark.asyncio
async def test_response_access_checks_token_and_user_agent(limiter):
    bad_token = await validate_response_access("not-a-token", "Mozilla/5.0", "203.0.113.7", limiter)
    assert bad_token.errors == ["Invalid invitation link format"]

    bot = await validate_response_access(generate_secure_token(), "curl/8.0", "203.0.113.7", limiter)
    assert bot.is_valid
    assert bot.warnings == ["Potential automated access detected"]


def test_response_content_only_warns():
    result = validate_response_content(
        {"strengths_observed": "Click here https://spam.example for free money"}
    )

    assert result.is_valid
    assert result.has_warnings
    assert not result.has_errors


def test_invitation_validity_window(clock):
    invitation = _invitation(clock, status=InvitationStatus.SENT, sent_at=clock())

    assert is_invitation_valid(invitation, clock() + timedelta(days=29))
    assert not is_invitation_valid(invitation, clock() + timedelta(days=30))


def test_declined_invitation_is_not_valid(clock):
    invitation = _invitation(clock, status=InvitationStatus.DECLINED)

    assert not is_invitation_valid(invitation, clock())


def test_sanitise_input_strips_markup():
    assert sanitise_input("  <b>Hello</b>   world; {ok} ") == "Hello world ok"
