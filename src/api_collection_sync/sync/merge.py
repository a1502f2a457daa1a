"""Reconcile a stored collection tree with a freshly imported one.

Items are matched by ``CollectionItem.identity_key()``. For each existing
item, in order:

- matched by a new item: the new content wins, ``is_deleted`` is cleared.
  The stored ``id`` and creation stamp are kept.
- unmatched, authored by a user: kept as is, ``is_deleted`` cleared.
- unmatched, generated by an import (``SourceType.SPEC``): kept, ``is_deleted`` set.

New items without an existing counterpart are appended in their imported
order. Folders are merged recursively, so children of a matched folder go
through the same rules; a folder that vanished from the import merges its
children against nothing. Nothing is ever physically removed.

Identity keys are assumed unique among siblings of the imported tree. When
two incoming siblings share a key (two same-named requests with the same
method in one Postman folder) and an existing item carries that key, only
the last incoming one is kept. Against an empty existing list both are
appended.
"""

import logging
from datetime import datetime

from api_collection_sync.parser.base import CollectionItem, ItemType, SourceType, utcnow

logger = logging.getLogger(__name__)


def merge_items(
    existing: list[CollectionItem],
    new: list[CollectionItem],
    acting_user: str | None = None,
) -> list[CollectionItem]:
    """Merge ``new`` into ``existing`` and return the next tree.

    Neither input is modified. When ``acting_user`` is given, items whose
    content or deletion state changed get a fresh ``updated_by``/``updated_at``.
    """
    return _merge(existing or [], new or [], acting_user, utcnow())


def _merge(
    existing: list[CollectionItem],
    new: list[CollectionItem],
    acting_user: str | None,
    now: datetime,
) -> list[CollectionItem]:
    new_by_key: dict[str, CollectionItem] = {}
    for item in new:
        key = item.identity_key()
        if key in new_by_key:
            logger.debug("Duplicate identity key %r in import, keeping the last item", key)
        new_by_key[key] = item
    existing_keys = {item.identity_key() for item in existing}

    merged: list[CollectionItem] = []
    refreshed = kept = deleted = 0
    for current in existing:
        key = current.identity_key()
        incoming = new_by_key.get(key)
        if incoming is not None:
            item = incoming.model_copy(
                deep=True,
                update={
                    "id": current.id,
                    "created_at": current.created_at or incoming.created_at,
                    "created_by": current.created_by or incoming.created_by,
                    "is_deleted": False,
                },
            )
            _stamp(item, acting_user, now)
            refreshed += 1
        elif current.source == SourceType.USER:
            item = current.model_copy(deep=True, update={"is_deleted": False})
            if current.is_deleted:
                _stamp(item, acting_user, now)
            kept += 1
        else:
            item = current.model_copy(deep=True, update={"is_deleted": True})
            if not current.is_deleted:
                _stamp(item, acting_user, now)
            deleted += 1

        if item.type == ItemType.FOLDER:
            counterpart = incoming.items if incoming is not None else []
            item.items = _merge(current.items, counterpart, acting_user, now)
        merged.append(item)

    added = 0
    for incoming in new:
        if incoming.identity_key() not in existing_keys:
            merged.append(incoming.model_copy(deep=True, update={"is_deleted": False}))
            added += 1

    logger.debug(
        "Merged %d items: %d refreshed, %d user-kept, %d soft-deleted, %d added",
        len(merged), refreshed, kept, deleted, added,
    )
    return merged


def _stamp(item: CollectionItem, acting_user: str | None, now: datetime) -> None:
    if acting_user:
        item.updated_by = acting_user
        item.updated_at = now
