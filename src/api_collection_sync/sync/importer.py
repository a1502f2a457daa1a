"""Import orchestrator: document in, collection (and branch) out.

parse -> resolve refs -> transform -> (reconcile, for active sync) -> persist.
All tree work is pure; the only side effects go through the store.
"""

import logging

from pydantic import BaseModel

from api_collection_sync.config import Settings, get_settings
from api_collection_sync.errors import BranchNotFoundError, CollectionNotFoundError
from api_collection_sync.parser.base import (
    Branch,
    BranchRef,
    Collection,
    CollectionItem,
    count_requests,
    utcnow,
)
from api_collection_sync.parser.detect import Dialect, detect_dialect, has_refs_section
from api_collection_sync.parser.openapi2 import transform_openapi2
from api_collection_sync.parser.openapi3 import transform_openapi3
from api_collection_sync.parser.postman import collection_info, transform_postman
from api_collection_sync.parser.refs import resolve_refs
from api_collection_sync.sync.merge import merge_items
from api_collection_sync.sync.store import CollectionStore

logger = logging.getLogger(__name__)


class ImportResult(BaseModel):
    """Outcome of one import, as handed back to the caller."""

    dialect: Dialect
    collection: Collection
    folders: dict[str, CollectionItem]
    branch: Branch | None = None
    branch_ref: BranchRef | None = None
    merged: bool = False
    diagnostics: list[str] = []


def transform_document(
    document: dict,
    acting_user: str,
    settings: Settings | None = None,
    diagnostics: list[str] | None = None,
) -> tuple[Dialect, dict[str, CollectionItem]]:
    """Detect the dialect, resolve refs where the dialect has them, transform."""
    settings = settings or get_settings()
    dialect = detect_dialect(document)

    if dialect == Dialect.POSTMAN:
        return dialect, transform_postman(document, acting_user, flatten=settings.flatten_postman_folders)

    if has_refs_section(document):
        document = resolve_refs(document, diagnostics)
    if dialect == Dialect.OPENAPI3:
        return dialect, transform_openapi3(document, acting_user, settings.local_base_url)
    return dialect, transform_openapi2(document, acting_user, settings.local_base_url)


def document_info(document: dict, dialect: Dialect) -> tuple[str, str]:
    """Title and description used to name the collection."""
    if dialect == Dialect.POSTMAN:
        return collection_info(document)
    info = document.get("info") or {}
    return str(info.get("title") or ""), str(info.get("description") or "")


class CollectionImporter:
    """Runs imports and active syncs against a ``CollectionStore``."""

    def __init__(self, store: CollectionStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    def import_document(
        self,
        document: dict,
        workspace_id: str,
        acting_user: str | None = None,
        active_sync: bool = False,
        active_sync_url: str = "",
        branch_name: str | None = None,
    ) -> ImportResult:
        """Import ``document`` into the workspace.

        Without ``active_sync`` a brand-new collection is always created.
        With it, an existing active-synced collection of the same title in
        the same workspace is reconciled through its branch; otherwise the
        collection and its first branch are created together.
        """
        acting_user = acting_user or self.settings.acting_user
        branch_name = branch_name or self.settings.default_branch
        diagnostics: list[str] = []

        dialect, folders = transform_document(document, acting_user, self.settings, diagnostics)
        items = list(folders.values())
        title, description = document_info(document, dialect)
        logger.info("Transformed %s document %r: %d root items", dialect.value, title, len(items))

        if not active_sync:
            collection = self._create_collection(title, description, workspace_id, items, acting_user)
            return ImportResult(dialect=dialect, collection=collection, folders=folders, diagnostics=diagnostics)

        existing = self.store.lookup_active_sync_collection(title, workspace_id)
        if existing is None:
            collection = self._create_collection(
                title, description, workspace_id, items, acting_user,
                active_sync=True, active_sync_url=active_sync_url,
            )
            branch, ref = self._create_branch(collection, branch_name, items, acting_user)
            return ImportResult(
                dialect=dialect, collection=collection, folders=folders,
                branch=branch, branch_ref=ref, diagnostics=diagnostics,
            )

        collection, branch, ref, merged = self._sync(existing, branch_name, items, acting_user)
        return ImportResult(
            dialect=dialect, collection=collection, folders=folders,
            branch=branch, branch_ref=ref, merged=merged, diagnostics=diagnostics,
        )

    def _create_collection(
        self,
        title: str,
        description: str,
        workspace_id: str,
        items: list[CollectionItem],
        acting_user: str,
        active_sync: bool = False,
        active_sync_url: str = "",
    ) -> Collection:
        now = utcnow()
        collection = Collection(
            name=title,
            description=description,
            workspace_id=workspace_id,
            items=items,
            total_requests=count_requests(items),
            active_sync=active_sync,
            active_sync_url=active_sync_url,
            created_at=now,
            updated_at=now,
            created_by=acting_user,
            updated_by=acting_user,
        )
        collection.id = self.store.persist_new_collection(collection)
        logger.info("Created collection %r (%s)", title, collection.id)
        return collection

    def _create_branch(
        self,
        collection: Collection,
        branch_name: str,
        items: list[CollectionItem],
        acting_user: str,
    ) -> tuple[Branch, BranchRef]:
        now = utcnow()
        branch = Branch(
            name=branch_name,
            collection_id=collection.id,
            items=items,
            created_at=now,
            updated_at=now,
            created_by=acting_user,
            updated_by=acting_user,
        )
        branch.id = self.store.persist_new_branch(branch)
        ref = BranchRef(id=branch.id, name=branch_name)
        self.store.append_branch_reference(collection.id, ref)
        collection.branches.append(ref)
        logger.info("Created branch %r for collection %s", branch_name, collection.id)
        return branch, ref

    def _sync(
        self,
        existing: Collection,
        branch_name: str,
        items: list[CollectionItem],
        acting_user: str,
    ) -> tuple[Collection, Branch, BranchRef, bool]:
        collection = self.store.lookup_collection(existing.id) if existing.id else None
        if collection is None:
            raise CollectionNotFoundError()

        branch = self.store.lookup_branch(collection.id, branch_name)
        if branch is None:
            if any(ref.name == branch_name for ref in collection.branches):
                raise BranchNotFoundError()
            branch, ref = self._create_branch(collection, branch_name, items, acting_user)
            merged = False
        else:
            branch.items = merge_items(branch.items, items, acting_user)
            branch.updated_at = utcnow()
            branch.updated_by = acting_user
            self.store.update_branch_items(branch.id, branch.items)
            ref = BranchRef(id=branch.id, name=branch.name)
            merged = True
            logger.info("Merged branch %r of collection %s", branch_name, collection.id)

        self.store.update_collection_items(collection.id, branch.items)
        collection.items = branch.items
        collection.total_requests = count_requests(branch.items)
        collection.updated_at = utcnow()
        collection.updated_by = acting_user
        return collection, branch, ref, merged
