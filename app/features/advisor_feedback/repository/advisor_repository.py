"""
Persistence layer for the advisor feedback feature.

Keeps collection names, record <-> model conversion and session filtering in
one place so the service can stay focused on lifecycle rules. Every record
goes through the schema registry, which stamps `_type`/`_schema_version`.
"""

from collections.abc import Iterable

from app.db.record_store import RecordStore, Write
from app.db.schema_registry import SchemaRegistry
from app.features.advisor_feedback.domain.models import (
    AdvisorInvitation,
    AdvisorRating,
    AdvisorResponse,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

INVITATIONS = "advisor_invitations"
RESPONSES = "advisor_responses"
RATINGS = "advisor_ratings"

INVITATION_TYPE = "advisor_invitation"
RESPONSE_TYPE = "advisor_response"
RATING_TYPE = "advisor_rating"


def register_advisor_schemas(registry: SchemaRegistry) -> None:
    """Register the advisor record types. Safe to call repeatedly."""
    registry.register(INVITATION_TYPE, AdvisorInvitation)
    registry.register(RESPONSE_TYPE, AdvisorResponse)
    registry.register(RATING_TYPE, AdvisorRating)


def session_lock_name(session_id: str) -> str:
    return f"session:{session_id}"


class AdvisorRepository:
    """Record store access for invitations, responses and ratings."""

    def __init__(self, store: RecordStore, registry: SchemaRegistry):
        self.store = store
        self.registry = registry
        register_advisor_schemas(registry)

    def _record_to_invitation(self, record: dict | None) -> AdvisorInvitation | None:
        if not record:
            return None
        return self.registry.load(INVITATION_TYPE, record)

    def _record_to_response(self, record: dict) -> AdvisorResponse:
        return self.registry.load(RESPONSE_TYPE, record)

    def _record_to_rating(self, record: dict) -> AdvisorRating:
        return self.registry.load(RATING_TYPE, record)

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def get_invitation(self, invitation_id: str) -> AdvisorInvitation | None:
        return self._record_to_invitation(await self.store.get(INVITATIONS, invitation_id))

    async def save_invitation(self, invitation: AdvisorInvitation) -> None:
        await self.store.put(
            INVITATIONS, invitation.id, self.registry.dump(INVITATION_TYPE, invitation)
        )

    async def list_invitations(self) -> list[AdvisorInvitation]:
        return [self._record_to_invitation(record) for record in await self.store.get_all(INVITATIONS)]

    async def list_invitations_for_session(self, session_id: str) -> list[AdvisorInvitation]:
        """Newest created_at first; ties broken by id so the order is stable."""
        invitations = [
            invitation
            for invitation in await self.list_invitations()
            if invitation.session_id == session_id
        ]
        invitations.sort(key=lambda invitation: invitation.id)
        invitations.sort(key=lambda invitation: invitation.created_at, reverse=True)
        return invitations

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def response_write(self, response: AdvisorResponse) -> Write:
        return (RESPONSES, response.id, self.registry.dump(RESPONSE_TYPE, response))

    def invitation_write(self, invitation: AdvisorInvitation) -> Write:
        return (INVITATIONS, invitation.id, self.registry.dump(INVITATION_TYPE, invitation))

    async def commit(self, writes: Iterable[Write]) -> None:
        """Apply writes atomically (responses plus the completed invitation)."""
        await self.store.put_many(writes)

    async def list_responses_for_invitations(
        self, invitation_ids: Iterable[str]
    ) -> list[AdvisorResponse]:
        """Oldest answered_at first."""
        wanted = set(invitation_ids)
        if not wanted:
            return []
        responses = [
            self._record_to_response(record)
            for record in await self.store.get_all(RESPONSES)
            if record.get("invitation_id") in wanted
        ]
        responses.sort(key=lambda response: (response.answered_at, response.id))
        return responses

    # ------------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------------

    async def save_rating(self, rating: AdvisorRating) -> None:
        await self.store.put(RATINGS, rating.id, self.registry.dump(RATING_TYPE, rating))

    async def list_ratings_for_invitations(self, invitation_ids: Iterable[str]) -> list[AdvisorRating]:
        wanted = set(invitation_ids)
        if not wanted:
            return []
        return [
            self._record_to_rating(record)
            for record in await self.store.get_all(RATINGS)
            if record.get("invitation_id") in wanted
        ]
