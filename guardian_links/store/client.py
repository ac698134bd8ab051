"""Record store contract consumed by the link engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

# Records are mappings (``get`` accessor) or attribute objects; see
# ``guardian_links.links.mapper.read_field``.
StoreRecord = Any


class StoreError(RuntimeError):
    """Raised for any failure reported by the record store.

    ``status`` follows HTTP conventions when the store knows it (400 for a
    rejected request, 404 for a missing record) and is ``None`` otherwise.
    ``is_abort`` marks requests cancelled before they completed.
    """

    def __init__(self, message: str, *, status: int | None = None, is_abort: bool = False):
        super().__init__(message)
        self.message = message
        self.status = status
        self.is_abort = is_abort

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"status={self.status!r}, is_abort={self.is_abort!r})"
        )


def normalize_store_error(error: BaseException) -> StoreError:
    """Coerce an arbitrary exception into a ``StoreError``.

    Store errors pass through untouched; anything else is wrapped with an
    unknown status and chained as the cause.
    """
    if isinstance(error, StoreError):
        return error
    message = str(error) or "Unknown record store error"
    normalized = StoreError(message, status=None, is_abort=False)
    normalized.__cause__ = error
    return normalized


def is_abort_like(error: StoreError) -> bool:
    """Return True when ``error`` describes a cancelled request."""
    message = error.message.lower()
    return error.is_abort or "request was aborted" in message or "autocancel" in message


@dataclass(frozen=True, slots=True)
class RecordPage:
    """One page of a list response."""

    items: list[StoreRecord] = field(default_factory=list)
    page: int = 1
    per_page: int = 30
    total_items: int = 0
    total_pages: int = 0


class RecordStore(Protocol):
    """Generic list/create/update/delete API over named collections."""

    def list_records(
        self,
        collection: str,
        *,
        page: int = 1,
        per_page: int = 30,
        filter_expr: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
        sort: str | None = None,
    ) -> RecordPage:
        ...

    def list_all_records(
        self,
        collection: str,
        *,
        filter_expr: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
        sort: str | None = None,
        batch_size: int = 500,
    ) -> list[StoreRecord]:
        ...

    def create(self, collection: str, payload: Mapping[str, Any]) -> StoreRecord:
        ...

    def update(self, collection: str, record_id: str, payload: Mapping[str, Any]) -> StoreRecord:
        ...

    def delete(self, collection: str, record_id: str) -> None:
        ...


def split_list_param(value: str | None) -> list[str]:
    """Split a comma separated ``expand``/``fields``/``sort`` parameter."""
    if not value:
        return []
    return [chunk.strip() for chunk in value.split(",") if chunk.strip()]


__all__ = [
    "RecordPage",
    "RecordStore",
    "StoreError",
    "StoreRecord",
    "is_abort_like",
    "normalize_store_error",
    "split_list_param",
]
