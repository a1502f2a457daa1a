"""Exceptions raised by api-collection-sync."""


class CollectionSyncError(Exception):
    """Base exception for all import and sync failures."""


class InvalidSpecificationError(CollectionSyncError):
    """The document is not a recognizable OpenAPI or Postman document."""

    def __init__(self, message: str = "Invalid specification"):
        super().__init__(message)


class InvalidItemError(CollectionSyncError):
    """A collection item cannot be keyed for reconciliation."""


class NotFoundError(CollectionSyncError):
    """A stored record expected by the sync is missing."""


class CollectionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Collection not found"):
        super().__init__(message)


class BranchNotFoundError(NotFoundError):
    def __init__(self, message: str = "Branch not found"):
        super().__init__(message)
