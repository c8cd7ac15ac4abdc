"""In-memory document store.

Keeps serialised documents (not live model objects) so callers never share
mutable state with the store. Supports ``subscribe`` and ``push`` to stand in
for a backend that streams remote changes.
"""

import copy
import inspect
import logging
from collections.abc import Callable

from jobtracker.repositories.base import DocumentStore, SnapshotCallback, T

logger = logging.getLogger(__name__)


class MemoryDocumentStore(DocumentStore[T]):
    """Process-local store, lost on exit."""

    backend_name = "memory"

    def __init__(self, model: type[T], collection: str) -> None:
        super().__init__(model, collection)
        self._documents: list[dict] = []
        self._subscribers: list[SnapshotCallback[T]] = []

    async def load(self) -> list[T]:
        return self.from_documents(copy.deepcopy(self._documents))

    async def save(self, items: list[T]) -> None:
        self._documents = [self.to_document(item) for item in items]

    async def save_one(self, item: T, is_new: bool) -> None:
        document = self.to_document(item)
        for index, existing in enumerate(self._documents):
            if existing.get("id") == document["id"]:
                self._documents[index] = document
                break
        else:
            self._documents.append(document)

    async def delete(self, item_id: str) -> None:
        self._documents = [d for d in self._documents if d.get("id") != item_id]

    @property
    def supports_push(self) -> bool:
        return True

    def subscribe(self, callback: SnapshotCallback[T]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def push(self, items: list[T]) -> None:
        """Simulate a remote change: replace contents and notify subscribers."""
        await self.save(items)
        snapshot = await self.load()
        for callback in list(self._subscribers):
            try:
                outcome = callback(snapshot)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:  # noqa: BLE001
                logger.exception("Snapshot subscriber failed")
