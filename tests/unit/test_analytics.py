from datetime import timedelta

from app.features.advisor_feedback.domain.models import (
    AdvisorInvitation,
    AdvisorResponse,
    CareerDomain,
    InvitationStatus,
)
from app.features.advisor_feedback.services.analytics import (
    build_advisor_analytics,
    build_feedback_summary,
    fallback_insights,
    response_time_bucket,
    response_time_distribution,
)


def _invitation(clock, index, status=InvitationStatus.SENT, **overrides):
    fields = {
        "id": f"inv-{index}",
        "session_id": "session-1",
        "advisor_name": f"Advisor {index}",
        "advisor_email": f"advisor{index}@example.com",
        "relationship_type": "colleague",
        "status": status,
        "created_at": clock(),
    }
    fields.update(overrides)
    return AdvisorInvitation(**fields)


def _response(invitation_id, question_id, text, quality=0.8, domain=CareerDomain.TECHNICAL):
    return AdvisorResponse(
        id=f"{invitation_id}:{question_id}",
        invitation_id=invitation_id,
        question_id=question_id,
        domain=domain,
        response=text,
        response_quality_score=quality,
        observation_period="one_to_three_years",
        confidence_context="confident",
    )


def test_response_time_buckets():
    assert response_time_bucket(0) == "Very Quick (1-2 days)"
    assert response_time_bucket(2) == "Very Quick (1-2 days)"
    assert response_time_bucket(5) == "Quick (3-5 days)"
    assert response_time_bucket(7) == "Reasonable (6-7 days)"
    assert response_time_bucket(14) == "Slow (1-2 weeks)"
    assert response_time_bucket(15) == "Very Slow (2+ weeks)"


def test_response_time_measured_from_sent_or_created(clock):
    sent = _invitation(
        clock,
        1,
        status=InvitationStatus.COMPLETED,
        sent_at=clock() + timedelta(days=1),
        completed_at=clock() + timedelta(days=5),
    )
    never_sent = _invitation(
        clock, 2, status=InvitationStatus.COMPLETED, completed_at=clock() + timedelta(days=20)
    )
    open_invitation = _invitation(clock, 3)

    assert response_time_distribution([sent, never_sent, open_invitation]) == {
        "Quick (3-5 days)": 1,
        "Very Slow (2+ weeks)": 1,
    }


def test_pending_counts_only_sent(clock):
    invitations = [
        _invitation(clock, 1, status=InvitationStatus.SENT),
        _invitation(clock, 2, status=InvitationStatus.VIEWED),
        _invitation(clock, 3, status=InvitationStatus.DRAFT),
        _invitation(clock, 4, status=InvitationStatus.DECLINED),
    ]

    analytics = build_advisor_analytics(invitations, [], [])

    assert analytics.pending_invitations == 1
    assert analytics.viewed_invitations == 1
    assert analytics.decline_rate == 0.25
    assert analytics.average_response_quality == 0.0
    assert analytics.to_dict()["pending_rate"] == 0.25


def test_empty_summary_keeps_invitation_count(clock):
    summary = build_feedback_summary("session-1", [_invitation(clock, 1)], [], now=clock())

    assert not summary.has_responses
    assert summary.total_invitations == 1
    assert summary.response_rate == 0.0


def test_summary_groups_custom_questions_and_ranks_themes(clock):
    invitation = _invitation(clock, 1, status=InvitationStatus.COMPLETED)
    responses = [
        _response("inv-1", "strengths_observed", "A reliable team player who can solve any problem"),
        _response("inv-1", "growth_potential", "Reliable under pressure and great with the team"),
        _response("inv-1", "team_fit", "Very reliable person overall in every way", domain=None),
    ]

    summary = build_feedback_summary("session-1", [invitation], responses, now=clock())

    assert summary.responses_by_domain.keys() == {"technical", "custom"}
    assert summary.top_themes[:2] == ["reliability", "collaboration"]
    assert summary.generated_at == clock()
    assert summary.to_dict()["responses_by_domain"] == {"technical": 2, "custom": 1}


def test_fallback_insights():
    responses = [
        _response("inv-1", "a", "They lead the team well and mentor juniors", quality=0.9),
        _response("inv-1", "b", "Strong leadership and team collaboration", quality=0.9),
    ]

    insights = fallback_insights(responses)

    assert insights[0] == "Advisors consistently highlighted your technical capabilities."
    assert "detailed, specific feedback" in insights[1]
    assert insights[2].startswith("Common themes across advisor feedback include: collaboration, leadership")
    assert fallback_insights([]) == []
