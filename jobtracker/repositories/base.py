"""Abstract storage port for tracker documents.

The engine and services only depend on DocumentStore. Which backend sits
behind it (memory, local JSON file, SQL database) is decided once when the
tracker context is built.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import pydantic

from jobtracker.core.errors import PersistenceError
from jobtracker.models.base import TrackerModel, format_validation_errors

T = TypeVar("T", bound=TrackerModel)

SnapshotCallback = Callable[[list[T]], Awaitable[None] | None]


class DocumentStore(ABC, Generic[T]):
    """Load/save/delete contract for one collection of documents.

    Documents are pydantic models with an ``id`` attribute. Stores persist
    their camelCase JSON form so every backend holds the same shape as the
    import/export format.

    Args:
        model: Model class used to rebuild documents on load.
        collection: Collection name (e.g. "applications").
    """

    backend_name = "abstract"

    def __init__(self, model: type[T], collection: str) -> None:
        self.model = model
        self.collection = collection

    @abstractmethod
    async def load(self) -> list[T]:
        """Return every stored document in stored order.

        Raises:
            PersistenceError: If the backend cannot be read or holds
                malformed documents.
        """
        ...

    @abstractmethod
    async def save(self, items: list[T]) -> None:
        """Replace the whole collection with ``items``.

        Raises:
            PersistenceError: If the write fails.
        """
        ...

    @abstractmethod
    async def save_one(self, item: T, is_new: bool) -> None:
        """Insert (``is_new``) or update a single document.

        Raises:
            PersistenceError: If the write fails.
        """
        ...

    @abstractmethod
    async def delete(self, item_id: str) -> None:
        """Remove a document; unknown ids are ignored.

        Raises:
            PersistenceError: If the write fails.
        """
        ...

    @property
    def supports_push(self) -> bool:
        """Whether the backend pushes remote changes via ``subscribe``."""
        return False

    def subscribe(self, callback: SnapshotCallback[T]) -> Callable[[], None]:
        """Register for pushed snapshots of the collection.

        Raises:
            NotImplementedError: For backends without push support.
        """
        raise NotImplementedError(
            f"{self.backend_name} store does not push changes"
        )

    # -------------------------------------------------------------------------
    # Serialisation helpers
    # -------------------------------------------------------------------------

    def to_document(self, item: T) -> dict:
        """Serialise a model to its stored JSON-compatible form."""
        return item.to_document()

    def from_documents(self, documents: list[object]) -> list[T]:
        """Validate raw stored documents into models.

        Raises:
            PersistenceError: If any document does not match the model.
        """
        items: list[T] = []
        for index, document in enumerate(documents):
            try:
                items.append(self.model.model_validate(document))
            except pydantic.ValidationError as exc:
                problems = "; ".join(format_validation_errors(exc))
                raise PersistenceError(
                    f"Malformed {self.collection} document at index {index}: "
                    f"{problems}",
                    backend=self.backend_name,
                ) from exc
        return items
