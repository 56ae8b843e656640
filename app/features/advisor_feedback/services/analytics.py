"""
Pure aggregation over a session's invitations, responses and ratings.

No I/O here: the service loads the records and these functions fold them
into AdvisorAnalytics / AdvisorFeedbackSummary.
"""

from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from app.features.advisor_feedback.domain.models import (
    AdvisorAnalytics,
    AdvisorFeedbackSummary,
    AdvisorInvitation,
    AdvisorRating,
    AdvisorResponse,
    InvitationStatus,
    utc_now,
)

# (max days inclusive, label); anything slower falls into the last bucket
RESPONSE_TIME_BUCKETS: tuple[tuple[int, str], ...] = (
    (2, "Very Quick (1-2 days)"),
    (5, "Quick (3-5 days)"),
    (7, "Reasonable (6-7 days)"),
    (14, "Slow (1-2 weeks)"),
)
SLOWEST_BUCKET = "Very Slow (2+ weeks)"

HIGH_QUALITY_THRESHOLD = 0.7
MAX_TOP_THEMES = 10


def response_time_bucket(days: int) -> str:
    for max_days, label in RESPONSE_TIME_BUCKETS:
        if days <= max_days:
            return label
    return SLOWEST_BUCKET


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def response_time_distribution(invitations: Sequence[AdvisorInvitation]) -> dict[str, int]:
    """Days from sending (or creation, if never sent) to completion, bucketed."""
    distribution: Counter[str] = Counter()
    for invitation in invitations:
        if invitation.completed_at is None:
            continue
        started: datetime = invitation.sent_at or invitation.created_at
        days = max(0, (invitation.completed_at - started).days)
        distribution[response_time_bucket(days)] += 1
    return dict(distribution)


def build_advisor_analytics(
    invitations: Sequence[AdvisorInvitation],
    responses: Sequence[AdvisorResponse],
    ratings: Sequence[AdvisorRating],
) -> AdvisorAnalytics:
    statuses = Counter(invitation.status for invitation in invitations)

    return AdvisorAnalytics(
        total_invitations=len(invitations),
        completed_invitations=statuses[InvitationStatus.COMPLETED],
        # Pending means delivered and unopened; viewed is tracked separately
        pending_invitations=statuses[InvitationStatus.SENT],
        viewed_invitations=statuses[InvitationStatus.VIEWED],
        declined_invitations=statuses[InvitationStatus.DECLINED],
        total_responses=len(responses),
        average_response_quality=_mean([response.response_quality_score for response in responses]),
        average_rating=_mean([rating.average_rating for rating in ratings]),
        relationship_type_distribution=dict(
            Counter(invitation.relationship_type.value for invitation in invitations)
        ),
        response_time_distribution=response_time_distribution(invitations),
    )


def _theme_counts(responses: Sequence[AdvisorResponse]) -> Counter[str]:
    counts: Counter[str] = Counter()
    for response in responses:
        counts.update(response.key_themes)
    return counts


def fallback_insights(responses: Sequence[AdvisorResponse]) -> list[str]:
    """Rule-based insight sentences used in place of model-generated ones."""
    if not responses:
        return []

    insights = []

    domains = Counter(response.domain.value for response in responses if response.domain is not None)
    if domains:
        top_domain, _ = min(domains.items(), key=lambda item: (-item[1], item[0]))
        insights.append(f"Advisors consistently highlighted your {top_domain} capabilities.")

    high_quality = sum(
        1 for response in responses if response.response_quality_score > HIGH_QUALITY_THRESHOLD
    )
    if high_quality > len(responses) * 0.6:
        insights.append(
            "Your advisors provided detailed, specific feedback indicating strong familiarity with your work."
        )

    common = [theme for theme, count in _sorted_themes(_theme_counts(responses)) if count >= 2]
    if common:
        insights.append(f"Common themes across advisor feedback include: {', '.join(common[:3])}.")

    return insights


def _sorted_themes(counts: Counter[str]) -> list[tuple[str, int]]:
    # Most frequent first, alphabetical within a tie
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def build_feedback_summary(
    session_id: str,
    invitations: Sequence[AdvisorInvitation],
    responses: Sequence[AdvisorResponse],
    now: datetime | None = None,
) -> AdvisorFeedbackSummary:
    if not responses:
        summary = AdvisorFeedbackSummary.empty(session_id)
        summary.total_invitations = len(invitations)
        return summary

    by_question: dict[str, list[AdvisorResponse]] = {}
    by_domain: dict[str, list[AdvisorResponse]] = {}
    for response in responses:
        by_question.setdefault(response.question_id, []).append(response)
        domain = response.domain.value if response.domain is not None else "custom"
        by_domain.setdefault(domain, []).append(response)

    return AdvisorFeedbackSummary(
        session_id=session_id,
        total_invitations=len(invitations),
        completed_responses=sum(
            1 for invitation in invitations if invitation.status == InvitationStatus.COMPLETED
        ),
        total_responses=len(responses),
        average_response_quality=_mean([response.response_quality_score for response in responses]),
        average_credibility_weight=_mean([response.credibility_weight for response in responses]),
        responses_by_question=by_question,
        responses_by_domain=by_domain,
        top_themes=[theme for theme, _ in _sorted_themes(_theme_counts(responses))[:MAX_TOP_THEMES]],
        insights=fallback_insights(responses),
        generated_at=now or utc_now(),
    )
