"""Persistence collaborators used by the importer.

``CollectionStore`` is the interface the importer talks to. The in-memory
store backs tests; ``JsonFileStore`` keeps everything in one JSON file for
the CLI. A real deployment plugs in its own document store.

The importer reads a branch and later writes it back in a separate call;
callers must allow at most one sync in flight per (collection, branch).
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from api_collection_sync.parser.base import Branch, BranchRef, Collection, CollectionItem, count_requests, new_id

logger = logging.getLogger(__name__)


class CollectionStore(Protocol):
    def lookup_active_sync_collection(self, title: str, workspace_id: str) -> Collection | None: ...

    def lookup_collection(self, collection_id: str) -> Collection | None: ...

    def lookup_branch(self, collection_id: str, branch_name: str) -> Branch | None: ...

    def persist_new_collection(self, collection: Collection) -> str: ...

    def persist_new_branch(self, branch: Branch) -> str: ...

    def update_branch_items(self, branch_id: str, items: list[CollectionItem]) -> None: ...

    def update_collection_items(self, collection_id: str, items: list[CollectionItem]) -> None: ...

    def append_branch_reference(self, collection_id: str, ref: BranchRef) -> None: ...


class InMemoryCollectionStore:
    """Dictionary-backed store. Returned records are copies."""

    def __init__(self):
        self.collections: dict[str, Collection] = {}
        self.branches: dict[str, Branch] = {}

    def lookup_active_sync_collection(self, title: str, workspace_id: str) -> Collection | None:
        for collection in self.collections.values():
            if collection.active_sync and collection.name == title and collection.workspace_id == workspace_id:
                return collection.model_copy(deep=True)
        return None

    def lookup_collection(self, collection_id: str) -> Collection | None:
        collection = self.collections.get(collection_id)
        return collection.model_copy(deep=True) if collection else None

    def lookup_branch(self, collection_id: str, branch_name: str) -> Branch | None:
        for branch in self.branches.values():
            if branch.collection_id == collection_id and branch.name == branch_name:
                return branch.model_copy(deep=True)
        return None

    def persist_new_collection(self, collection: Collection) -> str:
        collection_id = collection.id or new_id()
        self.collections[collection_id] = collection.model_copy(deep=True, update={"id": collection_id})
        return collection_id

    def persist_new_branch(self, branch: Branch) -> str:
        branch_id = branch.id or new_id()
        self.branches[branch_id] = branch.model_copy(deep=True, update={"id": branch_id})
        return branch_id

    def update_branch_items(self, branch_id: str, items: list[CollectionItem]) -> None:
        branch = self.branches[branch_id]
        branch.items = [item.model_copy(deep=True) for item in items]

    def update_collection_items(self, collection_id: str, items: list[CollectionItem]) -> None:
        collection = self.collections[collection_id]
        collection.items = [item.model_copy(deep=True) for item in items]
        collection.total_requests = count_requests(collection.items)

    def append_branch_reference(self, collection_id: str, ref: BranchRef) -> None:
        self.collections[collection_id].branches.append(ref.model_copy())


class JsonFileStore(InMemoryCollectionStore):
    """In-memory store that loads from and saves to a single JSON file.

    Every write is flushed to disk immediately.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = path
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            for raw in data.get("collections", []):
                collection = Collection.model_validate(raw)
                self.collections[collection.id] = collection
            for raw in data.get("branches", []):
                branch = Branch.model_validate(raw)
                self.branches[branch.id] = branch
            logger.debug("Loaded %d collections from %s", len(self.collections), path)

    def save(self) -> None:
        data = {
            "collections": [c.model_dump(mode="json", by_alias=True) for c in self.collections.values()],
            "branches": [b.model_dump(mode="json", by_alias=True) for b in self.branches.values()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def persist_new_collection(self, collection: Collection) -> str:
        collection_id = super().persist_new_collection(collection)
        self.save()
        return collection_id

    def persist_new_branch(self, branch: Branch) -> str:
        branch_id = super().persist_new_branch(branch)
        self.save()
        return branch_id

    def update_branch_items(self, branch_id: str, items: list[CollectionItem]) -> None:
        super().update_branch_items(branch_id, items)
        self.save()

    def update_collection_items(self, collection_id: str, items: list[CollectionItem]) -> None:
        super().update_collection_items(collection_id, items)
        self.save()

    def append_branch_reference(self, collection_id: str, ref: BranchRef) -> None:
        super().append_branch_reference(collection_id, ref)
        self.save()
