import pytest
from pydantic import BaseModel

from app.db.schema_registry import SchemaRegistry, SchemaRegistryError


class Note(BaseModel):
    id: str
    body: str


class Other(BaseModel):
    id: str


def test_register_is_register_if_absent(registry):
    assert registry.register("note", Note) is True
    assert registry.register("note", Other) is False

    assert registry.is_registered("note")
    assert registry.registered_types() == ["note"]


def test_dump_stamps_type_and_version(registry):
    registry.register("note", Note)

    record = registry.dump("note", Note(id="n1", body="hi"))

    assert record == {"id": "n1", "body": "hi", "_type": "note", "_schema_version": 1}
    assert registry.load("note", record) == Note(id="n1", body="hi")


def test_dump_rejects_wrong_model(registry):
    registry.register("note", Note)

    with pytest.raises(SchemaRegistryError):
        registry.dump("note", Other(id="x"))


def test_load_rejects_mismatched_type(registry):
    registry.register("note", Note)
    registry.register("other", Other)

    with pytest.raises(SchemaRegistryError):
        registry.load("note", {"id": "x", "_type": "other", "_schema_version": 1})


def test_unknown_type_raises():
    with pytest.raises(SchemaRegistryError):
        SchemaRegistry().load("missing", {})


def test_migrations_upgrade_old_records(registry):
    registry.register("note", Note, version=2)
    def rename_text(payload):
        payload["body"] = payload.pop("text")
        return payload

    registry.register_migration("note", 1, rename_text)

    note = registry.load("note", {"id": "n1", "text": "old", "_type": "note", "_schema_version": 1})

    assert note.body == "old"


def test_missing_migration_raises(registry):
    registry.register("note", Note, version=3)
    registry.register_migration("note", 2, lambda payload: payload)

    with pytest.raises(SchemaRegistryError):
        registry.load("note", {"id": "n1", "body": "x", "_schema_version": 1})
