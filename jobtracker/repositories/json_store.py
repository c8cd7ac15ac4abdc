"""Local JSON file document store.

One file per collection (``<data_dir>/<collection>.json``) holding a JSON
array in the import/export shape. Writes go to a temporary file that replaces
the target, so a crash mid-write leaves the previous version intact. Blocking
file I/O runs in a worker thread.
"""

import asyncio
import json
import logging
import os
from pathlib import Path

from jobtracker.core.errors import PersistenceError
from jobtracker.repositories.base import DocumentStore, T

logger = logging.getLogger(__name__)


class JsonFileDocumentStore(DocumentStore[T]):
    """File-backed store for a single collection.

    Args:
        model: Model class used to rebuild documents on load.
        collection: Collection name; also the file stem.
        data_dir: Directory holding the collection files (created on write).
    """

    backend_name = "json"

    def __init__(self, model: type[T], collection: str, data_dir: Path) -> None:
        super().__init__(model, collection)
        self.path = Path(data_dir) / f"{collection}.json"

    # -------------------------------------------------------------------------
    # Blocking helpers (run via asyncio.to_thread)
    # -------------------------------------------------------------------------

    def _read_documents(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(
                f"Cannot read {self.path}: {exc}", backend=self.backend_name
            ) from exc
        except json.JSONDecodeError as exc:
            raise PersistenceError(
                f"{self.path} is not valid JSON: {exc.msg}",
                backend=self.backend_name,
            ) from exc
        if not isinstance(raw, list):
            raise PersistenceError(
                f"{self.path} must hold a JSON array",
                backend=self.backend_name,
            )
        return raw

    def _write_documents(self, documents: list[dict]) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(documents, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceError(
                f"Cannot write {self.path}: {exc}", backend=self.backend_name
            ) from exc

    # -------------------------------------------------------------------------
    # DocumentStore
    # -------------------------------------------------------------------------

    async def load(self) -> list[T]:
        documents = await asyncio.to_thread(self._read_documents)
        items = self.from_documents(documents)
        logger.debug("Loaded %d %s from %s", len(items), self.collection, self.path)
        return items

    async def save(self, items: list[T]) -> None:
        documents = [self.to_document(item) for item in items]
        await asyncio.to_thread(self._write_documents, documents)

    async def save_one(self, item: T, is_new: bool) -> None:
        document = self.to_document(item)
        documents = await asyncio.to_thread(self._read_documents)
        replaced = False
        if not is_new:
            for index, existing in enumerate(documents):
                if existing.get("id") == document["id"]:
                    documents[index] = document
                    replaced = True
                    break
        if not replaced:
            documents.append(document)
        await asyncio.to_thread(self._write_documents, documents)

    async def delete(self, item_id: str) -> None:
        documents = await asyncio.to_thread(self._read_documents)
        remaining = [d for d in documents if d.get("id") != item_id]
        if len(remaining) != len(documents):
            await asyncio.to_thread(self._write_documents, remaining)
