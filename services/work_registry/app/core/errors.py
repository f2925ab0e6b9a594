"""Merge workflow exceptions."""


class CollectionNotFoundError(LookupError):
    """Raised when the collection to merge does not exist (or was already merged)."""

    def __init__(self, collection_id: int):
        self.collection_id = collection_id
        super().__init__(f"Collection-{collection_id} not found")


class MergedWorkInvalidError(Exception):
    """Raised inside the merge transaction when the new work fails record validation."""

    def __init__(self, collection_id: int, errors: list[str]):
        self.collection_id = collection_id
        self.errors = errors
        super().__init__(
            f"Merged work for Collection-{collection_id} is invalid: {'; '.join(errors)}"
        )
