import asyncio
from unittest.mock import AsyncMock

import pytest

from app.features.advisor_feedback.domain.errors import (
    AdvisorLimitExceeded,
    DuplicateAdvisor,
    EmailServiceUnavailable,
    InvalidStatusTransition,
    InvitationAlreadyCompleted,
    InvitationDeclined,
    InvitationExpired,
    InvitationNotFound,
    RateLimitExceeded,
    ValidationFailed,
)
from app.features.advisor_feedback.domain.models import AdvisorRelationship, InvitationStatus
from app.features.advisor_feedback.repository.advisor_repository import (
    INVITATIONS,
    RESPONSES,
    AdvisorRepository,
)
from app.features.advisor_feedback.services.advisor_service import AdvisorService
from app.security.advisor_security import is_valid_invitation_token


async def _create(service, session_id="session-1", email="ada@example.com", **kwargs):
    return await service.create_invitation(
        session_id=session_id,
        advisor_name=kwargs.pop("advisor_name", "Ada Lovelace"),
        advisor_email=email,
        relationship_type=kwargs.pop("relationship_type", AdvisorRelationship.MENTOR),
        **kwargs,
    )


async def _submit(service, invitation_id, answer, **kwargs):
    return await service.submit_advisor_responses(
        invitation_id,
        responses=kwargs.pop("responses", {"strengths_observed": answer, "value_reputation": answer}),
        confidence_levels=kwargs.pop("confidence_levels", {"strengths_observed": 4}),
        observation_period="one_to_three_years",
        confidence_context="confident",
        **kwargs,
    )


@pytest.mark.asyncio
async def test_create_invitation_returns_draft(advisor_service, clock):
    invitation = await _create(advisor_service, personal_message="Would love your view")

    assert invitation.status == InvitationStatus.DRAFT
    assert invitation.created_at == clock.now
    assert invitation.sent_at is None
    assert is_valid_invitation_token(invitation.id)
    assert await advisor_service.get_invitation_by_id(invitation.id) == invitation


@pytest.mark.asyncio
async def test_fifth_invitation_exceeds_limit(advisor_service, record_store):
    for index in range(4):
        await _create(advisor_service, email=f"advisor{index}@example.com")

    with pytest.raises(AdvisorLimitExceeded) as exc_info:
        await _create(advisor_service, email="fifth@example.com")

    assert exc_info.value.limit == 4
    assert len(await record_store.get_all(INVITATIONS)) == 4


@pytest.mark.asyncio
async def test_declined_invitations_still_count_toward_limit(advisor_service):
    invitations = [await _create(advisor_service, email=f"advisor{i}@example.com") for i in range(4)]
    await advisor_service.decline_invitation(invitations[0].id)

    with pytest.raises(AdvisorLimitExceeded):
        await _create(advisor_service, email="replacement@example.com")


@pytest.mark.asyncio
async def test_explicit_zero_limits_are_respected(record_store, registry, email_dispatcher, clock):
    service = AdvisorService(
        AdvisorRepository(record_store, registry),
        email_dispatcher,
        clock=clock,
        max_advisors_per_session=0,
        email_timeout_seconds=0,
    )

    assert service.email_timeout_seconds == 0
    with pytest.raises(AdvisorLimitExceeded):
        await _create(service)
    assert await record_store.get_all(INVITATIONS) == []


@pytest.mark.asyncio
async def test_duplicate_email_is_case_insensitive(advisor_service):
    await _create(advisor_service, email="Ada@Example.com")

    with pytest.raises(DuplicateAdvisor):
        await _create(advisor_service, email="ada@example.COM")

    other_session = await _create(advisor_service, session_id="session-2", email="ada@example.com")
    assert other_session.session_id == "session-2"


@pytest.mark.asyncio
async def test_create_invitation_validation(advisor_service):
    with pytest.raises(ValidationFailed) as exc_info:
        await advisor_service.create_invitation(
            session_id="",
            advisor_name=" ",
            advisor_email="not-an-email",
            relationship_type="nemesis",
        )

    assert len(exc_info.value.errors) == 4


@pytest.mark.asyncio
async def test_create_invitation_rate_limited_per_client(advisor_service):
    for index in range(10):
        await _create(advisor_service, session_id=f"session-{index}", client_identifier="203.0.113.7")

    with pytest.raises(RateLimitExceeded) as exc_info:
        await _create(advisor_service, session_id="session-10", client_identifier="203.0.113.7")

    assert exc_info.value.retry_after == 3600
    assert exc_info.value.limit == 10


@pytest.mark.asyncio
async def test_concurrent_creates_never_exceed_cap(advisor_service, record_store):
    results = await asyncio.gather(
        *(_create(advisor_service, email=f"advisor{index}@example.com") for index in range(10)),
        return_exceptions=True,
    )

    created = [result for result in results if not isinstance(result, Exception)]
    rejected = [result for result in results if isinstance(result, AdvisorLimitExceeded)]
    assert len(created) == 4
    assert len(rejected) == 6
    assert len(await record_store.get_all(INVITATIONS)) == 4


@pytest.mark.asyncio
async def test_session_invitations_newest_first(advisor_service, clock):
    first = await _create(advisor_service, email="first@example.com")
    clock.advance(minutes=5)
    second = await _create(advisor_service, email="second@example.com")

    listed = await advisor_service.get_invitations_for_session("session-1")

    assert [invitation.id for invitation in listed] == [second.id, first.id]
    assert await advisor_service.get_invitations_for_session("unknown") == []


@pytest.mark.asyncio
async def test_submit_to_missing_invitation_writes_nothing(advisor_service, record_store, detailed_answer):
    with pytest.raises(InvitationNotFound):
        await _submit(advisor_service, "invitation_1700000000000_0123456789abcdef", detailed_answer)

    assert await record_store.get_all(RESPONSES) == []
    assert await record_store.get_all(INVITATIONS) == []


@pytest.mark.asyncio
async def test_full_invitation_round_trip(advisor_service, email_dispatcher, clock, detailed_answer):
    invitation = await _create(advisor_service)

    sent = await advisor_service.send_invitation_email(invitation.id, user_name="Grace", user_title="Engineer")
    assert sent.status == InvitationStatus.SENT
    assert sent.sent_at == clock.now
    assert len(email_dispatcher.sent_messages) == 1
    to_address, content = email_dispatcher.sent_messages[0]
    assert to_address == "ada@example.com"
    assert f"/advisor-response/{invitation.id}" in content.text

    clock.advance(days=2)
    viewed = await advisor_service.mark_invitation_viewed(invitation.id)
    assert viewed.status == InvitationStatus.VIEWED
    assert viewed.viewed_at == clock.now

    clock.advance(days=1)
    responses = await _submit(advisor_service, invitation.id, detailed_answer)

    assert [response.question_id for response in responses] == ["strengths_observed", "value_reputation"]
    assert responses[0].confidence_level == 4
    assert responses[1].confidence_level is None
    assert all(response.response_quality_score > 0.7 for response in responses)

    completed = await advisor_service.get_invitation_by_id(invitation.id)
    assert completed.status == InvitationStatus.COMPLETED
    assert completed.completed_at == clock.now
    assert len(await advisor_service.get_responses_for_invitation(invitation.id)) == 2
    assert len(await advisor_service.get_responses_for_session("session-1")) == 2


@pytest.mark.asyncio
async def test_resend_keeps_original_sent_at(advisor_service, email_dispatcher, clock):
    invitation = await _create(advisor_service)
    first = await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    clock.advance(days=1)
    again = await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    assert again.sent_at == first.sent_at
    assert len(email_dispatcher.sent_messages) == 2


@pytest.mark.asyncio
async def test_second_submission_is_rejected(advisor_service, detailed_answer):
    invitation = await _create(advisor_service)
    await advisor_service.send_invitation_email(invitation.id, user_name="Grace")
    await _submit(advisor_service, invitation.id, detailed_answer)

    with pytest.raises(InvitationAlreadyCompleted):
        await _submit(advisor_service, invitation.id, detailed_answer)


@pytest.mark.asyncio
async def test_submit_to_declined_invitation(advisor_service, detailed_answer):
    invitation = await _create(advisor_service)
    await advisor_service.decline_invitation(invitation.id, reason="Too busy")

    with pytest.raises(InvitationDeclined):
        await _submit(advisor_service, invitation.id, detailed_answer)


@pytest.mark.asyncio
async def test_submit_after_expiry(advisor_service, clock, detailed_answer):
    invitation = await _create(advisor_service)
    await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    clock.advance(days=31)

    with pytest.raises(InvitationExpired):
        await _submit(advisor_service, invitation.id, detailed_answer)


@pytest.mark.asyncio
async def test_invalid_answers_write_nothing(advisor_service, record_store, detailed_answer):
    invitation = await _create(advisor_service)
    await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    with pytest.raises(ValidationFailed) as exc_info:
        await _submit(
            advisor_service,
            invitation.id,
            detailed_answer,
            responses={"strengths_observed": detailed_answer, "made_up": detailed_answer, "growth_potential": "Good worker"},
            confidence_levels={"strengths_observed": 7},
        )

    errors = exc_info.value.errors
    assert "made_up: Unknown question" in errors
    assert any(error.startswith("growth_potential:") for error in errors)
    assert any("Confidence level" in error for error in errors)
    assert await record_store.get_all(RESPONSES) == []
    assert (await advisor_service.get_invitation_by_id(invitation.id)).status == InvitationStatus.SENT


@pytest.mark.asyncio
async def test_custom_questions_are_answerable(advisor_service, detailed_answer):
    invitation = await _create(advisor_service, custom_questions={"team_fit": "How do they fit in a team?"})

    questions = advisor_service.get_advisor_questions(invitation)
    assert [question["id"] for question in questions][-1] == "team_fit"
    assert len(advisor_service.get_advisor_questions()) == 5

    responses = await _submit(advisor_service, invitation.id, detailed_answer, responses={"team_fit": detailed_answer})
    assert responses[0].domain is None
    assert responses[0].question_text == "How do they fit in a team?"


@pytest.mark.asyncio
async def test_submit_checks_response_rate_limit(advisor_service, detailed_answer):
    invitation = await _create(advisor_service)
    await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    for _ in range(5):
        with pytest.raises(ValidationFailed):
            await _submit(
                advisor_service,
                invitation.id,
                detailed_answer,
                responses={"strengths_observed": "short"},
                client_identifier="203.0.113.7",
                user_agent="Mozilla/5.0",
            )

    with pytest.raises(RateLimitExceeded):
        await _submit(
            advisor_service, invitation.id, detailed_answer, client_identifier="203.0.113.7", user_agent="Mozilla/5.0"
        )


@pytest.mark.asyncio
async def test_email_failure_leaves_invitation_in_draft(advisor_service):
    invitation = await _create(advisor_service)
    advisor_service.email_dispatcher.send = AsyncMock(return_value=False)

    with pytest.raises(EmailServiceUnavailable):
        await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    current = await advisor_service.get_invitation_by_id(invitation.id)
    assert current.status == InvitationStatus.DRAFT
    assert current.sent_at is None


@pytest.mark.asyncio
async def test_email_timeout_leaves_invitation_in_draft(advisor_service):
    invitation = await _create(advisor_service)

    async def slow_send(*args, **kwargs):
        await asyncio.sleep(5)
        return True

    advisor_service.email_dispatcher.send = slow_send

    with pytest.raises(EmailServiceUnavailable):
        await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    assert (await advisor_service.get_invitation_by_id(invitation.id)).status == InvitationStatus.DRAFT


@pytest.mark.asyncio
async def test_send_requires_draft_or_sent(advisor_service):
    invitation = await _create(advisor_service)
    await advisor_service.decline_invitation(invitation.id)

    with pytest.raises(InvalidStatusTransition):
        await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    with pytest.raises(InvitationNotFound):
        await advisor_service.send_invitation_email("missing", user_name="Grace")


@pytest.mark.asyncio
async def test_mark_viewed_is_idempotent(advisor_service, clock):
    invitation = await _create(advisor_service)
    first = await advisor_service.mark_invitation_viewed(invitation.id)

    clock.advance(hours=1)
    second = await advisor_service.mark_invitation_viewed(invitation.id)

    assert second.viewed_at == first.viewed_at
    assert await advisor_service.mark_invitation_viewed("missing") is None


@pytest.mark.asyncio
async def test_viewing_after_expiry_expires_sent_invitation(advisor_service, clock):
    invitation = await _create(advisor_service)
    await advisor_service.send_invitation_email(invitation.id, user_name="Grace")

    clock.advance(days=31)
    viewed = await advisor_service.mark_invitation_viewed(invitation.id)

    assert viewed.status == InvitationStatus.EXPIRED
    assert viewed.viewed_at is None
    assert (await advisor_service.get_invitation_by_id(invitation.id)).status == InvitationStatus.EXPIRED


@pytest.mark.asyncio
async def test_viewing_stale_draft_leaves_it_unviewed(advisor_service, clock):
    invitation = await _create(advisor_service)

    clock.advance(days=31)
    viewed = await advisor_service.mark_invitation_viewed(invitation.id)

    assert viewed.status == InvitationStatus.DRAFT
    assert viewed.viewed_at is None


@pytest.mark.asyncio
async def test_decline_is_idempotent(advisor_service, clock):
    invitation = await _create(advisor_service)
    declined = await advisor_service.decline_invitation(invitation.id, reason="Travelling")

    clock.advance(days=1)
    again = await advisor_service.decline_invitation(invitation.id)

    assert again.declined_at == declined.declined_at
    assert again.decline_reason == "Travelling"


@pytest.mark.asyncio
async def test_reminder_rules(advisor_service, email_dispatcher, clock):
    invitation = await _create(advisor_service)
    assert await advisor_service.send_reminder_email(invitation.id, "Grace") is False

    await advisor_service.send_invitation_email(invitation.id, user_name="Grace")
    assert await advisor_service.send_reminder_email(invitation.id, "Grace") is False

    clock.advance(days=3)
    assert await advisor_service.send_reminder_email(invitation.id, "Grace") is True

    current = await advisor_service.get_invitation_by_id(invitation.id)
    assert current.reminder_count == 1
    assert current.reminded_at == clock.now
    assert email_dispatcher.sent_messages[-1][1].subject == "Gentle reminder: Career insight request from Grace"
    assert await advisor_service.send_reminder_email("missing", "Grace") is False


@pytest.mark.asyncio
async def test_cleanup_expires_stale_open_invitations(advisor_service, clock):
    stale = await _create(advisor_service, email="stale@example.com")
    draft = await _create(advisor_service, email="draft@example.com")
    await advisor_service.send_invitation_email(stale.id, user_name="Grace")

    clock.advance(days=31)

    assert await advisor_service.cleanup_expired_invitations() == 1
    assert (await advisor_service.get_invitation_by_id(stale.id)).status == InvitationStatus.EXPIRED
    assert (await advisor_service.get_invitation_by_id(draft.id)).status == InvitationStatus.DRAFT
    assert await advisor_service.cleanup_expired_invitations() == 0


@pytest.mark.asyncio
async def test_rate_advisor_replaces_previous_rating(advisor_service):
    invitation = await _create(advisor_service)

    await advisor_service.rate_advisor(
        invitation.id, 3, 3, 3, 3, response_timeliness="reasonable", advisor_strengths=["honest_feedback"]
    )
    rating = await advisor_service.rate_advisor(invitation.id, 5, 5, 4, 4, response_timeliness="prompt")

    assert rating.average_rating == 4.5
    assert rating.is_high_quality_advisor
    assert rating.overall_assessment == "Exceptional advisor - highly recommended"
    ratings = await advisor_service.repository.list_ratings_for_invitations([invitation.id])
    assert len(ratings) == 1

    with pytest.raises(ValidationFailed):
        await advisor_service.rate_advisor(invitation.id, 6, 5, 4, 4, response_timeliness="prompt")
    with pytest.raises(InvitationNotFound):
        await advisor_service.rate_advisor("missing", 5, 5, 5, 5, response_timeliness="prompt")


@pytest.mark.asyncio
async def test_analytics_for_session(advisor_service, detailed_answer):
    completed = await _create(advisor_service, email="one@example.com", relationship_type="manager")
    sent = await _create(advisor_service, email="two@example.com")
    await _create(advisor_service, email="three@example.com")

    await advisor_service.send_invitation_email(completed.id, user_name="Grace")
    await advisor_service.send_invitation_email(sent.id, user_name="Grace")
    await _submit(advisor_service, completed.id, detailed_answer)

    analytics = await advisor_service.get_advisor_analytics("session-1")

    assert analytics.total_invitations == 3
    assert analytics.completed_invitations == 1
    assert analytics.pending_invitations == 1
    assert analytics.completion_rate == pytest.approx(1 / 3)
    assert analytics.total_responses == 2
    assert analytics.relationship_type_distribution == {"manager": 1, "mentor": 2}
    assert analytics.response_time_distribution == {"Very Quick (1-2 days)": 1}


@pytest.mark.asyncio
async def test_analytics_for_empty_session(advisor_service):
    analytics = await advisor_service.get_advisor_analytics("nobody")

    assert analytics.total_invitations == 0
    assert analytics.completion_rate == 0.0
    assert analytics.decline_rate == 0.0
    assert analytics.pending_rate == 0.0


@pytest.mark.asyncio
async def test_analytics_degrade_to_empty_on_store_failure(advisor_service, monkeypatch):
    monkeypatch.setattr(
        advisor_service.repository, "list_invitations_for_session", AsyncMock(side_effect=RuntimeError("boom"))
    )

    analytics = await advisor_service.get_advisor_analytics("session-1")
    summary = await advisor_service.generate_feedback_summary("session-1")

    assert analytics.total_invitations == 0
    assert not summary.has_responses


@pytest.mark.asyncio
async def test_feedback_summary(advisor_service, detailed_answer):
    invitation = await _create(advisor_service)
    await advisor_service.send_invitation_email(invitation.id, user_name="Grace")
    await _submit(advisor_service, invitation.id, detailed_answer)

    summary = await advisor_service.generate_feedback_summary("session-1")

    assert summary.has_responses
    assert summary.total_responses == 2
    assert summary.response_rate == 1.0
    assert summary.has_good_quality
    assert set(summary.responses_by_domain) == {"technical", "social"}
    assert {"collaboration", "communication"} <= set(summary.top_themes)
