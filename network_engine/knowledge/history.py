"""
History Tracker - Step Back Through Network Mutations.

Watches a GraphStore, records a bounded, newest-first list of deep
snapshots labelled by what changed, and restores any recorded snapshot.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from network_engine.knowledge.graph_store import GraphStore
from network_engine.knowledge.schemas import Entity, MutationEvent, Relationship
from network_engine.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 20


class RestoreError(Exception):
    """Raised when restoring a history entry that does not exist (or was evicted)."""

    pass


class HistoryAction(str, Enum):
    """Label for a recorded transition."""

    ADDED = "Added"
    DELETED = "Deleted"
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    MODIFIED = "Modified"


class HistorySnapshot(BaseModel):
    """Independent copy of the graph contents at one point in time."""

    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)


class HistoryEntry(BaseModel):
    """One step the user can go back to."""

    id: str = Field(..., description="Entry ID, e.g. 'history-3'")
    action: HistoryAction = Field(...)
    description: str = Field(..., description="Human-readable summary")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    entity_count: int = Field(..., ge=0)
    relationship_count: int = Field(..., ge=0)
    snapshot: HistorySnapshot = Field(...)


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def classify_transition(
    previous: tuple[int, int],
    current: tuple[int, int],
) -> tuple[HistoryAction, str]:
    """
    Label a transition between two (entity_count, relationship_count) states.

    The first matching rule wins, so a change to both counts is reported
    by its entity-level label only.
    """
    entities_diff = current[0] - previous[0]
    relationships_diff = current[1] - previous[1]

    if entities_diff > 0:
        return HistoryAction.ADDED, f"Added {_plural(entities_diff, 'entity', 'entities')}"
    if entities_diff < 0:
        return HistoryAction.DELETED, f"Deleted {_plural(-entities_diff, 'entity', 'entities')}"
    if relationships_diff > 0:
        return (
            HistoryAction.CONNECTED,
            f"Added {_plural(relationships_diff, 'connection', 'connections')}",
        )
    if relationships_diff < 0:
        return (
            HistoryAction.DISCONNECTED,
            f"Removed {_plural(-relationships_diff, 'connection', 'connections')}",
        )
    return HistoryAction.MODIFIED, "Network modified"


class HistoryTracker:
    """
    Bounded undo history for one GraphStore.

    The store's state when the tracker attaches is the baseline and is not
    recorded. After that, every mutation that changes the entity or
    relationship count is recorded. Count-neutral mutations (edits, title
    changes) are recorded as "Modified" only with ``track_modifications``.

    Usage:
        tracker = HistoryTracker(store)
        store.add_entity(entity)
        tracker.restore(tracker.entries[-1].id)
    """

    def __init__(
        self,
        store: GraphStore,
        limit: int = DEFAULT_HISTORY_LIMIT,
        track_modifications: bool = False,
    ) -> None:
        """
        Attach a tracker to a store.

        Args:
            store: Store to observe
            limit: Maximum number of entries kept (oldest evicted)
            track_modifications: Also record count-neutral mutations
        """
        if limit < 1:
            raise ValueError(f"History limit must be at least 1, got {limit}")

        self.store = store
        self.limit = limit
        self.track_modifications = track_modifications

        self._entries: list[HistoryEntry] = []
        self._counter = 0
        self._last_counts = self._counts()
        self._unsubscribe = store.subscribe(self.observe)

    def _counts(self) -> tuple[int, int]:
        return (self.store.entity_count(), self.store.relationship_count())

    @property
    def entries(self) -> list[HistoryEntry]:
        """Recorded entries, newest first."""
        return [entry.model_copy(deep=True) for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def observe(self, event: MutationEvent) -> HistoryEntry | None:
        """
        Store listener: record the transition caused by ``event``.

        Returns:
            The new entry, or None if nothing was recorded
        """
        counts = self._counts()
        previous = self._last_counts
        self._last_counts = counts

        if counts == previous and not self.track_modifications:
            return None

        action, description = classify_transition(previous, counts)

        entry = HistoryEntry(
            id=f"history-{self._counter}",
            action=action,
            description=description,
            entity_count=counts[0],
            relationship_count=counts[1],
            snapshot=HistorySnapshot(
                entities=self.store.entities,
                relationships=self.store.relationships,
            ),
        )
        self._counter += 1

        self._entries.insert(0, entry)
        if len(self._entries) > self.limit:
            evicted = self._entries.pop()
            logger.debug(f"Evicted oldest history entry {evicted.id}")

        logger.debug(f"History {entry.id}: {description} (after {event.kind.value})")
        return entry

    def get_entry(self, entry_id: str) -> HistoryEntry | None:
        """Get an entry by ID, or None if unknown or evicted."""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry.model_copy(deep=True)
        return None

    def restore(self, entry_id: str) -> HistoryEntry:
        """
        Put the entry's entities and relationships back into the store.

        Title, description and investigation context are left as they are.
        The restore is itself a mutation and is recorded like any other.

        Raises:
            RestoreError: If the entry does not exist
        """
        entry = self.get_entry(entry_id)
        if entry is None:
            raise RestoreError(f"History entry '{entry_id}' not found")

        network = self.store.network
        network.entities = entry.snapshot.entities
        network.relationships = entry.snapshot.relationships
        self.store.replace_network(network)

        logger.info(
            f"Restored {entry_id} ({entry.entity_count} entities, "
            f"{entry.relationship_count} relationships)"
        )
        return entry

    def clear(self) -> None:
        """Forget all entries; the current state becomes the new baseline."""
        self._entries = []
        self._last_counts = self._counts()

    def detach(self) -> None:
        """Stop observing the store."""
        self._unsubscribe()
