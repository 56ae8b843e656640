# app/db/schema_registry.py
"""
Schema registry for persisted record types.

Maps a stable type id (e.g. "advisor_invitation") to the pydantic model that
serializes it, plus the current schema version. Stored records are wrapped
with `_type` and `_schema_version` so older payloads can be upgraded by
registered migrations when they are read back.

Registration is register-if-absent: registering an id that already exists
is a no-op, never an error, so feature modules can call their register
hooks more than once (app startup, tests) without coordination.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
Migration = Callable[[dict[str, Any]], dict[str, Any]]

TYPE_FIELD = "_type"
VERSION_FIELD = "_schema_version"


class SchemaRegistryError(Exception):
    """Raised for unknown type ids or records that cannot be upgraded."""


@dataclass(slots=True)
class SchemaEntry:
    type_id: str
    model: type[BaseModel]
    version: int = 1
    migrations: dict[int, Migration] = field(default_factory=dict)


class SchemaRegistry:
    """Type id -> serializer/deserializer mapping."""

    def __init__(self) -> None:
        self._entries: dict[str, SchemaEntry] = {}

    def register(self, type_id: str, model: type[BaseModel], version: int = 1) -> bool:
        """
        Register a model under `type_id` if the id is not taken yet.

        Returns:
            True if the entry was added, False if the id was already registered
        """
        if type_id in self._entries:
            return False

        self._entries[type_id] = SchemaEntry(type_id=type_id, model=model, version=version)
        logger.debug("Schema registered", type_id=type_id, model=model.__name__, version=version)
        return True

    def register_migration(self, type_id: str, from_version: int, migration: Migration) -> bool:
        """Register an upgrade step from `from_version` to `from_version + 1` (if absent)."""
        entry = self._entry(type_id)
        if from_version in entry.migrations:
            return False
        entry.migrations[from_version] = migration
        return True

    def is_registered(self, type_id: str) -> bool:
        return type_id in self._entries

    def registered_types(self) -> list[str]:
        return sorted(self._entries)

    def dump(self, type_id: str, obj: BaseModel) -> dict[str, Any]:
        """Serialize a model instance into a storable record."""
        entry = self._entry(type_id)
        if not isinstance(obj, entry.model):
            raise SchemaRegistryError(
                f"Expected {entry.model.__name__} for {type_id}, got {type(obj).__name__}"
            )
        record = obj.model_dump(mode="json")
        record[TYPE_FIELD] = type_id
        record[VERSION_FIELD] = entry.version
        return record

    def load(self, type_id: str, record: dict[str, Any]) -> BaseModel:
        """Deserialize a stored record, applying migrations for older versions."""
        entry = self._entry(type_id)
        payload = dict(record)
        stored_type = payload.pop(TYPE_FIELD, type_id)
        if stored_type != type_id:
            raise SchemaRegistryError(f"Record of type {stored_type} read as {type_id}")

        version = payload.pop(VERSION_FIELD, entry.version)
        while version < entry.version:
            migration = entry.migrations.get(version)
            if migration is None:
                raise SchemaRegistryError(
                    f"No migration for {type_id} from schema version {version}"
                )
            payload = migration(payload)
            version += 1

        return entry.model.model_validate(payload)

    def _entry(self, type_id: str) -> SchemaEntry:
        entry = self._entries.get(type_id)
        if entry is None:
            raise SchemaRegistryError(f"Unknown record type: {type_id}")
        return entry


# Process-wide registry, populated once at startup by each feature's register hook
schema_registry = SchemaRegistry()
