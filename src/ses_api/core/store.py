"""Record stores: thread-safe JSON file storage and an in-memory equivalent."""

import json
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class ConditionFailedError(Exception):
    """Raised when a conditional update finds the record in an unexpected state."""

    def __init__(self, item_id: str, current: BaseModel) -> None:
        super().__init__(f"Condition not met for item '{item_id}'")
        self.item_id = item_id
        self.current = current


class RecordStore(Protocol[T]):
    """Access contract shared by every record store implementation.

    Services depend on this protocol rather than on a concrete store so that
    the JSON-backed store can be swapped for the in-memory one in tests.
    """

    def list_all(self) -> list[T]: ...

    def get_by_id(self, item_id: str) -> T | None: ...

    def create(self, item: T) -> T: ...

    def update_fields(
        self,
        item_id: str,
        fields: dict[str, Any],
        condition: Callable[[T], bool] | None = None,
    ) -> T | None: ...

    def delete(self, item_id: str) -> bool: ...

    def find(self, predicate: Callable[[T], bool]) -> list[T]: ...


class _LockedStore(Generic[T]):
    """CRUD logic over a list of Pydantic models guarded by an RLock.

    Subclasses only decide where the list lives (``_load``/``_save``).
    """

    def __init__(self, model_class: type[T]) -> None:
        self.model_class = model_class
        self._lock = threading.RLock()

    def _load(self) -> list[T]:
        raise NotImplementedError

    def _save(self, items: list[T]) -> None:
        raise NotImplementedError

    def list_all(self) -> list[T]:
        """List all items in insertion order."""
        with self._lock:
            return self._load()

    def get_by_id(self, item_id: str) -> T | None:
        """Get an item by its ID, or None if it does not exist."""
        with self._lock:
            for item in self._load():
                if getattr(item, "id", None) == item_id:
                    return item
            return None

    def create(self, item: T) -> T:
        """Append a new item.

        Raises:
            ValueError: If an item with the same ID already exists
        """
        with self._lock:
            items = self._load()
            item_id = getattr(item, "id", None)

            if item_id and any(getattr(i, "id", None) == item_id for i in items):
                raise ValueError(f"Item with ID '{item_id}' already exists")

            items.append(item)
            self._save(items)
            return item

    def update_fields(
        self,
        item_id: str,
        fields: dict[str, Any],
        condition: Callable[[T], bool] | None = None,
    ) -> T | None:
        """Read-modify-write selected fields of one item atomically.

        Args:
            item_id: The ID of the item to update
            fields: Attribute names mapped to their new values
            condition: Optional check run against the current item under the
                lock; the write only happens when it returns True

        Returns:
            The updated item, or None if the item is not found

        Raises:
            ConditionFailedError: If ``condition`` rejects the current item
        """
        with self._lock:
            items = self._load()
            for i, existing in enumerate(items):
                if getattr(existing, "id", None) != item_id:
                    continue
                if condition is not None and not condition(existing):
                    raise ConditionFailedError(item_id, existing)
                changes = dict(fields)
                if "updated_at" in type(existing).model_fields:
                    changes.setdefault("updated_at", datetime.utcnow())
                updated = existing.model_copy(update=changes)
                items[i] = updated
                self._save(items)
                return updated
            return None

    def delete(self, item_id: str) -> bool:
        """Delete an item by ID, returning False if it was not found."""
        with self._lock:
            items = self._load()
            remaining = [i for i in items if getattr(i, "id", None) != item_id]

            if len(remaining) < len(items):
                self._save(remaining)
                return True
            return False

    def find(self, predicate: Callable[[T], bool]) -> list[T]:
        """Find items matching a predicate function."""
        with self._lock:
            return [item for item in self._load() if predicate(item)]


class JsonStore(_LockedStore[T]):
    """Thread-safe JSON file storage with atomic read/write operations.

    Provides CRUD operations on a JSON file containing a list of Pydantic models.
    Uses RLock for thread-safety, allowing nested locks from the same thread.

    Example:
        ```python
        store = JsonStore[Environment](
            file_path=Path("data/metadata/environments.json"),
            collection_key="environments",
            model_class=Environment,
        )
        environments = store.list_all()
        store.create(new_environment)
        ```
    """

    def __init__(
        self,
        file_path: Path,
        collection_key: str,
        model_class: type[T],
    ) -> None:
        """Initialize the JSON store.

        Args:
            file_path: Path to the JSON file
            collection_key: Key in the JSON object containing the list (e.g., "environments")
            model_class: Pydantic model class for serialization/deserialization
        """
        super().__init__(model_class)
        self.file_path = file_path
        self.collection_key = collection_key

        # Ensure file exists with empty collection
        self._ensure_file()

    def _ensure_file(self) -> None:
        """Create the JSON file with empty collection if it doesn't exist."""
        if not self.file_path.exists():
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            self._write_raw({self.collection_key: []})

    def _read_raw(self) -> dict[str, Any]:
        """Read raw JSON data from file."""
        with open(self.file_path, encoding="utf-8") as f:
            return json.load(f)

    def _write_raw(self, data: dict[str, Any]) -> None:
        """Write raw JSON data to file atomically."""
        # Write to temp file first, then rename for atomicity
        temp_path = self.file_path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
        temp_path.replace(self.file_path)

    def _load(self) -> list[T]:
        data = self._read_raw()
        items = data.get(self.collection_key, [])
        return [self.model_class.model_validate(item) for item in items]

    def _save(self, items: list[T]) -> None:
        data = {self.collection_key: [item.model_dump(mode="json") for item in items]}
        self._write_raw(data)


class MemoryStore(_LockedStore[T]):
    """In-memory store with the same contract as JsonStore.

    Nothing survives a restart. Items are copied on the way in and out so
    callers never share mutable state with the store.
    """

    def __init__(self, model_class: type[T]) -> None:
        super().__init__(model_class)
        self._items: list[T] = []

    def _load(self) -> list[T]:
        return [item.model_copy(deep=True) for item in self._items]

    def _save(self, items: list[T]) -> None:
        self._items = [item.model_copy(deep=True) for item in items]
