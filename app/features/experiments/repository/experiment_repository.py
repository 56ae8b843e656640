"""Persistence for career experiments."""

from app.db.record_store import RecordStore
from app.db.schema_registry import SchemaRegistry
from app.features.experiments.domain.models import CareerExperiment

EXPERIMENTS = "career_experiments"
EXPERIMENT_TYPE = "career_experiment"


def register_experiment_schemas(registry: SchemaRegistry) -> None:
    registry.register(EXPERIMENT_TYPE, CareerExperiment)


def experiment_lock_name(experiment_id: str) -> str:
    return f"experiment:{experiment_id}"


class ExperimentRepository:
    def __init__(self, store: RecordStore, registry: SchemaRegistry):
        self.store = store
        self.registry = registry
        register_experiment_schemas(registry)

    async def get_experiment(self, experiment_id: str) -> CareerExperiment | None:
        record = await self.store.get(EXPERIMENTS, experiment_id)
        if not record:
            return None
        return self.registry.load(EXPERIMENT_TYPE, record)

    async def save_experiment(self, experiment: CareerExperiment) -> None:
        await self.store.put(
            EXPERIMENTS, experiment.id, self.registry.dump(EXPERIMENT_TYPE, experiment)
        )

    async def list_experiments_for_session(self, session_id: str) -> list[CareerExperiment]:
        """Oldest first, matching the order the user planned them."""
        experiments = [
            self.registry.load(EXPERIMENT_TYPE, record)
            for record in await self.store.get_all(EXPERIMENTS)
            if record.get("session_id") == session_id
        ]
        experiments.sort(key=lambda experiment: (experiment.created_at, experiment.id))
        return experiments
