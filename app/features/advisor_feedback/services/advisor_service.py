"""
Advisor Service - single authority for the advisor invitation lifecycle.

Responsibilities:
- Create invitations (validation, rate limit, per-session cap, duplicate check)
- Send invitation and reminder emails through the dispatcher
- Track status changes: draft -> sent -> viewed -> completed | declined | expired
- Accept advisor responses and ratings
- Derive analytics and feedback summaries (never raise; degrade to empty)

Concurrency:
- create_invitation holds the `session:<id>` lock across the cap/duplicate
  check and the insert, so concurrent creates cannot both take the last slot
- status mutations hold `invitation:<id>` and re-read before writing
- email dispatch happens outside any lock, bounded by a timeout; the
  invitation is only updated after the dispatcher reports success
- a submission writes every response and the completed invitation in one
  put_many batch, so readers never see half a submission
"""

import asyncio
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any

from app.config import settings
from app.db.record_store import RecordStoreError
from app.features.advisor_feedback.domain.errors import (
    AdvisorLimitExceeded,
    DuplicateAdvisor,
    EmailServiceUnavailable,
    InvalidStatusTransition,
    InvitationAlreadyCompleted,
    InvitationDeclined,
    InvitationExpired,
    InvitationNotFound,
    PersistenceError,
    RateLimitExceeded,
    ValidationFailed,
)
from app.features.advisor_feedback.domain.models import (
    OPEN_STATUSES,
    AdvisorAnalytics,
    AdvisorConfidenceContext,
    AdvisorFeedbackSummary,
    AdvisorInvitation,
    AdvisorObservationPeriod,
    AdvisorRating,
    AdvisorRelationship,
    AdvisorResponse,
    AdvisorResponseTimeliness,
    AdvisorStrengthArea,
    CareerDomain,
    InvitationStatus,
    can_transition,
    utc_now,
)
from app.features.advisor_feedback.domain.questions import ADVISOR_QUESTIONS
from app.features.advisor_feedback.repository.advisor_repository import (
    AdvisorRepository,
    session_lock_name,
)
from app.features.advisor_feedback.services.analytics import (
    build_advisor_analytics,
    build_feedback_summary,
)
from app.features.advisor_feedback.services.email_service import (
    INVITATION_TEMPLATE,
    REMINDER_TEMPLATE,
    EmailDispatcher,
)
from app.infrastructure.observability.logging import get_logger
from app.middleware.rate_limiter import RateLimiter
from app.security.advisor_security import (
    generate_secure_token,
    is_invitation_valid,
    is_valid_email,
    validate_invitation_creation,
    validate_response_access,
    validate_response_content,
)
from app.utils.response_validator import calculate_response_quality, validate_response_text

logger = get_logger(__name__)


def invitation_lock_name(invitation_id: str) -> str:
    return f"invitation:{invitation_id}"


@contextmanager
def _store_errors(operation: str, invitation_id: str | None = None) -> Iterator[None]:
    """Re-raise record store failures as PersistenceError."""
    try:
        yield
    except RecordStoreError as e:
        logger.error(
            "Advisor record store operation failed",
            operation=operation,
            store_operation=e.operation,
            invitation_id=invitation_id,
            error=str(e),
        )
        raise PersistenceError(f"{operation} failed: {e}", invitation_id, e.recoverable) from e


class AdvisorService:
    """Orchestrates advisor invitations, responses, ratings and analytics."""

    def __init__(
        self,
        repository: AdvisorRepository,
        email_dispatcher: EmailDispatcher,
        rate_limiter: RateLimiter | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_advisors_per_session: int | None = None,
        email_timeout_seconds: float | None = None,
    ):
        self.repository = repository
        self.email_dispatcher = email_dispatcher
        self.rate_limiter = rate_limiter
        self._clock = clock
        if max_advisors_per_session is None:
            max_advisors_per_session = settings.ADVISOR_MAX_PER_SESSION
        if email_timeout_seconds is None:
            email_timeout_seconds = settings.EMAIL_DISPATCH_TIMEOUT_SECONDS
        self.max_advisors_per_session = max_advisors_per_session
        self.email_timeout_seconds = email_timeout_seconds

    @property
    def store(self):
        return self.repository.store

    # ------------------------------------------------------------------
    # Invitation creation and lookup
    # ------------------------------------------------------------------

    async def create_invitation(
        self,
        session_id: str,
        advisor_name: str,
        advisor_email: str,
        relationship_type: AdvisorRelationship | str,
        advisor_phone: str | None = None,
        personal_message: str | None = None,
        include_personal_message: bool = True,
        custom_questions: dict[str, str] | None = None,
        client_identifier: str | None = None,
    ) -> AdvisorInvitation:
        """
        Create a draft invitation for one advisor.

        Raises:
            ValidationFailed: empty session id/name, malformed email, bad relationship
            RateLimitExceeded: client_identifier exhausted its invitation window
            AdvisorLimitExceeded: session already has the maximum number of invitations
            DuplicateAdvisor: same email (case-insensitive) already invited to this session
            PersistenceError: record store failure
        """
        session_id = (session_id or "").strip()
        advisor_name = (advisor_name or "").strip()
        advisor_email = (advisor_email or "").strip()

        errors = []
        if not session_id:
            errors.append("Session ID is required")
        if not advisor_name:
            errors.append("Advisor name is required")
        if not is_valid_email(advisor_email):
            errors.append("Invalid email address format")
        try:
            relationship = AdvisorRelationship(relationship_type)
        except ValueError:
            errors.append(f"Unknown relationship type: {relationship_type}")
        if errors:
            raise ValidationFailed(errors)

        if client_identifier:
            security = await validate_invitation_creation(
                session_id, advisor_email, client_identifier, self.rate_limiter
            )
            if security.rate_limit is not None and not security.rate_limit.allowed:
                raise RateLimitExceeded(
                    "Too many invitation attempts. Please wait before sending more invitations.",
                    retry_after=security.rate_limit.retry_after,
                    limit=security.rate_limit.limit,
                )
            if not security.is_valid:
                raise ValidationFailed(security.errors)
            if security.has_warnings:
                logger.warning(
                    "Invitation created with security warnings",
                    session_id=session_id,
                    warnings=security.warnings,
                )

        normalized_email = advisor_email.lower()

        with _store_errors("create_invitation"):
            async with self.store.lock(session_lock_name(session_id)):
                existing = await self.repository.list_invitations_for_session(session_id)

                if len(existing) >= self.max_advisors_per_session:
                    logger.info(
                        "Advisor limit reached",
                        session_id=session_id,
                        limit=self.max_advisors_per_session,
                    )
                    raise AdvisorLimitExceeded(session_id, self.max_advisors_per_session)

                if any(invitation.normalized_email == normalized_email for invitation in existing):
                    raise DuplicateAdvisor(session_id, advisor_email)

                invitation = AdvisorInvitation(
                    id=generate_secure_token(),
                    session_id=session_id,
                    advisor_name=advisor_name,
                    advisor_email=advisor_email,
                    advisor_phone=advisor_phone,
                    relationship_type=relationship,
                    personal_message=personal_message,
                    include_personal_message=include_personal_message,
                    custom_questions=custom_questions or None,
                    created_at=self._clock(),
                )
                await self.repository.save_invitation(invitation)

        logger.info(
            "Advisor invitation created",
            invitation_id=invitation.id,
            session_id=session_id,
            relationship_type=relationship.value,
        )
        return invitation

    async def get_invitation_by_id(self, invitation_id: str) -> AdvisorInvitation | None:
        """Soft lookup: None for unknown ids."""
        with _store_errors("get_invitation_by_id", invitation_id):
            return await self.repository.get_invitation(invitation_id)

    async def get_invitations_for_session(self, session_id: str) -> list[AdvisorInvitation]:
        """Newest created_at first, ties broken by id."""
        with _store_errors("get_invitations_for_session"):
            return await self.repository.list_invitations_for_session(session_id)

    async def _require_invitation(self, invitation_id: str) -> AdvisorInvitation:
        invitation = await self.get_invitation_by_id(invitation_id)
        if invitation is None:
            raise InvitationNotFound(invitation_id)
        return invitation

    # ------------------------------------------------------------------
    # Email
    # ------------------------------------------------------------------

    def generate_advisor_response_url(self, invitation_id: str, base_url: str | None = None) -> str:
        base = (base_url or settings.ADVISOR_RESPONSE_BASE_URL).rstrip("/")
        return f"{base}/advisor-response/{invitation_id}"

    async def _dispatch(
        self, invitation: AdvisorInvitation, template_id: str, params: dict[str, Any]
    ) -> None:
        try:
            delivered = await asyncio.wait_for(
                self.email_dispatcher.send(invitation.advisor_email, template_id, params),
                timeout=self.email_timeout_seconds,
            )
        except TimeoutError as e:
            logger.error(
                "Email dispatch timed out",
                invitation_id=invitation.id,
                template_id=template_id,
                timeout_seconds=self.email_timeout_seconds,
            )
            raise EmailServiceUnavailable("Email dispatch timed out", invitation.id) from e

        if not delivered:
            logger.error("Email dispatch failed", invitation_id=invitation.id, template_id=template_id)
            raise EmailServiceUnavailable("Email dispatch failed", invitation.id)

    async def send_invitation_email(
        self,
        invitation_id: str,
        user_name: str,
        user_title: str | None = None,
        company_name: str | None = None,
    ) -> AdvisorInvitation:
        """
        Email the invitation and move it from draft to sent.

        A resend of a sent invitation keeps it sent with its original sent_at.
        On dispatch failure or timeout the invitation is left untouched.
        """
        invitation = await self._require_invitation(invitation_id)
        if invitation.status not in (InvitationStatus.DRAFT, InvitationStatus.SENT):
            raise InvalidStatusTransition(invitation_id, invitation.status, InvitationStatus.SENT)

        params = {
            "advisor_name": invitation.advisor_name,
            "relationship_type": invitation.relationship_type.value,
            "user_name": user_name,
            "user_title": user_title,
            "company_name": company_name,
            "personal_message": (
                invitation.personal_message if invitation.include_personal_message else None
            ),
            "response_url": self.generate_advisor_response_url(invitation_id),
            "expiry_days": settings.ADVISOR_INVITATION_EXPIRY_DAYS,
        }
        await self._dispatch(invitation, INVITATION_TEMPLATE, params)

        with _store_errors("send_invitation_email", invitation_id):
            async with self.store.lock(invitation_lock_name(invitation_id)):
                current = await self._require_invitation(invitation_id)
                if current.status == InvitationStatus.DRAFT:
                    current = current.model_copy(
                        update={"status": InvitationStatus.SENT, "sent_at": self._clock()}
                    )
                    await self.repository.save_invitation(current)

        logger.info("Advisor invitation sent", invitation_id=invitation_id, status=current.status)
        return current

    async def send_reminder_email(self, invitation_id: str, user_name: str) -> bool:
        """
        Send a reminder when the invitation allows one.

        Returns False (without raising) for unknown invitations, invitations
        not eligible for a reminder, and dispatch failures.
        """
        invitation = await self.get_invitation_by_id(invitation_id)
        now = self._clock()
        if invitation is None or not invitation.can_send_reminder(
            settings.ADVISOR_MAX_REMINDERS, settings.ADVISOR_REMINDER_MIN_DAYS, now
        ):
            return False

        params = {
            "advisor_name": invitation.advisor_name,
            "relationship_type": invitation.relationship_type.value,
            "user_name": user_name,
            "response_url": self.generate_advisor_response_url(invitation_id),
            "reminder_number": invitation.reminder_count + 1,
            "days_since_sent": invitation.days_since_sent(now),
        }
        try:
            await self._dispatch(invitation, REMINDER_TEMPLATE, params)
        except EmailServiceUnavailable:
            logger.warning("Reminder not sent", invitation_id=invitation_id)
            return False

        with _store_errors("send_reminder_email", invitation_id):
            async with self.store.lock(invitation_lock_name(invitation_id)):
                current = await self._require_invitation(invitation_id)
                if current.status not in OPEN_STATUSES:
                    return False
                await self.repository.save_invitation(
                    current.model_copy(
                        update={"reminder_count": current.reminder_count + 1, "reminded_at": now}
                    )
                )

        logger.info(
            "Advisor reminder sent",
            invitation_id=invitation_id,
            reminder_number=invitation.reminder_count + 1,
        )
        return True

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def mark_invitation_viewed(self, invitation_id: str) -> AdvisorInvitation | None:
        """
        Idempotent: only draft/sent move to viewed; viewed_at is stamped once.

        A link opened after the expiry window never shows as viewed; a sent
        invitation found past it is expired on the spot.
        """
        with _store_errors("mark_invitation_viewed", invitation_id):
            async with self.store.lock(invitation_lock_name(invitation_id)):
                invitation = await self.repository.get_invitation(invitation_id)
                if invitation is None:
                    return None
                if invitation.status not in (InvitationStatus.DRAFT, InvitationStatus.SENT):
                    return invitation
                if not is_invitation_valid(invitation, self._clock()):
                    if invitation.status in OPEN_STATUSES:
                        invitation = invitation.model_copy(update={"status": InvitationStatus.EXPIRED})
                        await self.repository.save_invitation(invitation)
                        logger.info("Expired advisor invitation on view", invitation_id=invitation_id)
                    return invitation

                invitation = invitation.model_copy(
                    update={
                        "status": InvitationStatus.VIEWED,
                        "viewed_at": invitation.viewed_at or self._clock(),
                    }
                )
                await self.repository.save_invitation(invitation)

        logger.info("Advisor invitation viewed", invitation_id=invitation_id)
        return invitation

    async def decline_invitation(self, invitation_id: str, reason: str | None = None) -> AdvisorInvitation:
        with _store_errors("decline_invitation", invitation_id):
            async with self.store.lock(invitation_lock_name(invitation_id)):
                invitation = await self._require_invitation(invitation_id)
                if invitation.status == InvitationStatus.DECLINED:
                    return invitation
                if not can_transition(invitation.status, InvitationStatus.DECLINED):
                    raise InvalidStatusTransition(
                        invitation_id, invitation.status, InvitationStatus.DECLINED
                    )

                invitation = invitation.model_copy(
                    update={
                        "status": InvitationStatus.DECLINED,
                        "declined_at": self._clock(),
                        "decline_reason": reason,
                    }
                )
                await self.repository.save_invitation(invitation)

        logger.info("Advisor invitation declined", invitation_id=invitation_id)
        return invitation

    async def cleanup_expired_invitations(self, now: datetime | None = None) -> int:
        """Expire sent/viewed invitations older than the expiry window. Returns the count."""
        now = now or self._clock()
        cutoff = now - timedelta(days=settings.ADVISOR_INVITATION_EXPIRY_DAYS)
        expired = 0

        with _store_errors("cleanup_expired_invitations"):
            for candidate in await self.repository.list_invitations():
                if candidate.status not in OPEN_STATUSES:
                    continue
                if (candidate.sent_at or candidate.created_at) > cutoff:
                    continue

                async with self.store.lock(invitation_lock_name(candidate.id)):
                    current = await self.repository.get_invitation(candidate.id)
                    if current is None or current.status not in OPEN_STATUSES:
                        continue
                    await self.repository.save_invitation(
                        current.model_copy(update={"status": InvitationStatus.EXPIRED})
                    )
                    expired += 1

        if expired:
            logger.info("Expired stale advisor invitations", count=expired)
        return expired

    def _ensure_open(self, invitation: AdvisorInvitation) -> None:
        if invitation.status == InvitationStatus.COMPLETED:
            raise InvitationAlreadyCompleted(invitation.id)
        if invitation.status == InvitationStatus.DECLINED:
            raise InvitationDeclined(invitation.id)
        if invitation.status == InvitationStatus.EXPIRED or not is_invitation_valid(
            invitation, self._clock()
        ):
            raise InvitationExpired(invitation.id)

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def get_advisor_questions(self, invitation: AdvisorInvitation | None = None) -> list[dict]:
        """The standard question set, plus any custom questions on the invitation."""
        questions = [question.to_dict() for question in ADVISOR_QUESTIONS.values()]
        if invitation is not None and invitation.custom_questions:
            questions.extend(
                {"id": question_id, "domain": None, "question": text, "placeholder": "", "follow_up_prompts": []}
                for question_id, text in invitation.custom_questions.items()
            )
        return questions

    def _question_lookup(
        self, invitation: AdvisorInvitation
    ) -> dict[str, tuple[str, CareerDomain | None]]:
        lookup: dict[str, tuple[str, CareerDomain | None]] = {
            question_id: (question.question, question.domain)
            for question_id, question in ADVISOR_QUESTIONS.items()
        }
        for question_id, text in (invitation.custom_questions or {}).items():
            lookup.setdefault(question_id, (text, None))
        return lookup

    async def submit_advisor_responses(
        self,
        invitation_id: str,
        responses: Mapping[str, str],
        confidence_levels: Mapping[str, int],
        observation_period: AdvisorObservationPeriod | str,
        confidence_context: AdvisorConfidenceContext | str,
        specific_examples: Mapping[str, list[str]] | None = None,
        additional_context: str | None = None,
        is_anonymous: bool = False,
        client_identifier: str | None = None,
        user_agent: str | None = None,
    ) -> list[AdvisorResponse]:
        """
        Record every answer for an invitation and complete it.

        Nothing is written unless every answer validates. Returns the
        responses in the order the question ids were given.
        """
        invitation = await self._require_invitation(invitation_id)

        if client_identifier:
            access = await validate_response_access(
                invitation_id, user_agent, client_identifier, self.rate_limiter
            )
            if access.rate_limit is not None and not access.rate_limit.allowed:
                raise RateLimitExceeded(
                    "Too many response attempts. Please wait before trying again.",
                    retry_after=access.rate_limit.retry_after,
                    limit=access.rate_limit.limit,
                )
            if not access.is_valid:
                raise ValidationFailed(access.errors, invitation_id)

        self._ensure_open(invitation)

        errors = []
        try:
            observation_period = AdvisorObservationPeriod(observation_period)
        except ValueError:
            errors.append(f"Unknown observation period: {observation_period}")
        try:
            confidence_context = AdvisorConfidenceContext(confidence_context)
        except ValueError:
            errors.append(f"Unknown confidence context: {confidence_context}")

        if not responses:
            errors.append("At least one response is required")

        questions = self._question_lookup(invitation)
        for question_id, text in responses.items():
            if question_id not in questions:
                errors.append(f"{question_id}: Unknown question")
                continue
            result = validate_response_text(text)
            errors.extend(f"{question_id}: {error}" for error in result.errors)
            level = confidence_levels.get(question_id)
            if level is not None and not 1 <= level <= 5:
                errors.append(f"{question_id}: Confidence level must be between 1 and 5")

        if errors:
            logger.info(
                "Advisor response submission rejected",
                invitation_id=invitation_id,
                error_count=len(errors),
            )
            raise ValidationFailed(errors, invitation_id)

        content_check = validate_response_content(responses, client_identifier)
        if content_check.has_warnings:
            logger.warning(
                "Advisor responses flagged by content checks",
                invitation_id=invitation_id,
                warnings=content_check.warnings,
            )

        now = self._clock()
        submitted = []
        for question_id, text in responses.items():
            question_text, domain = questions[question_id]
            submitted.append(
                AdvisorResponse(
                    id=f"{invitation_id}:{question_id}",
                    invitation_id=invitation_id,
                    question_id=question_id,
                    question_text=question_text,
                    domain=domain,
                    response=text.strip(),
                    confidence_level=confidence_levels.get(question_id),
                    response_quality_score=calculate_response_quality(text),
                    specific_examples=list((specific_examples or {}).get(question_id) or []),
                    observation_period=observation_period,
                    confidence_context=confidence_context,
                    additional_context=additional_context,
                    is_anonymous=is_anonymous,
                    answered_at=now,
                )
            )

        with _store_errors("submit_advisor_responses", invitation_id):
            async with self.store.lock(invitation_lock_name(invitation_id)):
                # Re-check under the lock; a concurrent submission may have won
                current = await self._require_invitation(invitation_id)
                self._ensure_open(current)
                completed = current.model_copy(
                    update={"status": InvitationStatus.COMPLETED, "completed_at": now}
                )
                writes = [self.repository.response_write(response) for response in submitted]
                writes.append(self.repository.invitation_write(completed))
                await self.repository.commit(writes)

        logger.info(
            "Advisor responses submitted",
            invitation_id=invitation_id,
            response_count=len(submitted),
        )
        return submitted

    async def get_responses_for_invitation(self, invitation_id: str) -> list[AdvisorResponse]:
        with _store_errors("get_responses_for_invitation", invitation_id):
            return await self.repository.list_responses_for_invitations([invitation_id])

    async def get_responses_for_session(self, session_id: str) -> list[AdvisorResponse]:
        invitations = await self.get_invitations_for_session(session_id)
        with _store_errors("get_responses_for_session"):
            return await self.repository.list_responses_for_invitations(
                invitation.id for invitation in invitations
            )

    # ------------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------------

    async def rate_advisor(
        self,
        invitation_id: str,
        overall_rating: int,
        insightfulness: int,
        specificity: int,
        helpfulness: int,
        response_timeliness: AdvisorResponseTimeliness | str,
        would_recommend_advisor: bool = True,
        positive_aspects: str | None = None,
        improvement_areas: str | None = None,
        advisor_strengths: list[AdvisorStrengthArea | str] | None = None,
        additional_feedback: str | None = None,
        is_anonymous_feedback: bool = False,
        question_specific_ratings: dict[str, int] | None = None,
    ) -> AdvisorRating:
        """Store the user's rating of an advisor. One rating per invitation; re-rating replaces it."""
        await self._require_invitation(invitation_id)

        scores = {
            "overall_rating": overall_rating,
            "insightfulness": insightfulness,
            "specificity": specificity,
            "helpfulness": helpfulness,
            **{f"question {key}": value for key, value in (question_specific_ratings or {}).items()},
        }
        errors = [f"{name} must be between 1 and 5" for name, value in scores.items() if not 1 <= value <= 5]
        try:
            timeliness = AdvisorResponseTimeliness(response_timeliness)
            strengths = [AdvisorStrengthArea(strength) for strength in advisor_strengths or []]
        except ValueError as e:
            errors.append(str(e))
        if errors:
            raise ValidationFailed(errors, invitation_id)

        rating = AdvisorRating(
            id=f"{invitation_id}:rating",
            invitation_id=invitation_id,
            overall_rating=overall_rating,
            insightfulness=insightfulness,
            specificity=specificity,
            helpfulness=helpfulness,
            would_recommend_advisor=would_recommend_advisor,
            response_timeliness=timeliness,
            positive_aspects=positive_aspects,
            improvement_areas=improvement_areas,
            advisor_strengths=strengths,
            additional_feedback=additional_feedback,
            is_anonymous_feedback=is_anonymous_feedback,
            question_specific_ratings=question_specific_ratings,
            rated_at=self._clock(),
        )
        with _store_errors("rate_advisor", invitation_id):
            await self.repository.save_rating(rating)

        logger.info("Advisor rated", invitation_id=invitation_id, average_rating=rating.average_rating)
        return rating

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def get_advisor_analytics(self, session_id: str) -> AdvisorAnalytics:
        """Aggregate metrics for a session; zeroed analytics on empty sessions or failure."""
        try:
            invitations = await self.repository.list_invitations_for_session(session_id)
            invitation_ids = [invitation.id for invitation in invitations]
            responses = await self.repository.list_responses_for_invitations(invitation_ids)
            ratings = await self.repository.list_ratings_for_invitations(invitation_ids)
            return build_advisor_analytics(invitations, responses, ratings)
        except Exception as e:
            logger.error(
                "Failed to build advisor analytics",
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return AdvisorAnalytics.empty()

    async def generate_feedback_summary(self, session_id: str) -> AdvisorFeedbackSummary:
        """Quality/credibility roll-up for a session; empty summary on failure."""
        try:
            invitations = await self.repository.list_invitations_for_session(session_id)
            responses = await self.repository.list_responses_for_invitations(
                invitation.id for invitation in invitations
            )
            return build_feedback_summary(session_id, invitations, responses, now=self._clock())
        except Exception as e:
            logger.error(
                "Failed to generate advisor feedback summary",
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return AdvisorFeedbackSummary.empty(session_id)
