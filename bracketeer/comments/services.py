"""Service layer for message comment threads."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import COMMENTS_COLLECTION
from bracketeer.errors import InternalError, ValidationError
from bracketeer.storage import document_locks, get_store, sanitize_name

if TYPE_CHECKING:
    from bracketeer.storage import DocumentStore


class CommentService:
    """Append-only comment threads keyed by an external message id."""

    @staticmethod
    def _store(store: DocumentStore | None) -> DocumentStore:
        return store if store is not None else get_store(COMMENTS_COLLECTION)

    @staticmethod
    def _thread(store: DocumentStore, key: str) -> list[dict[str, Any]]:
        thread = store.get(key)
        if thread is None:
            return []
        if not isinstance(thread, list):
            raise InternalError(
                "Failed to read existing comments.", kind="CorruptDocument"
            )
        return thread

    @staticmethod
    def list_comments(
        message_id: str, store: DocumentStore | None = None
    ) -> list[dict[str, Any]]:
        store = CommentService._store(store)
        return CommentService._thread(store, sanitize_name(message_id))

    @staticmethod
    def add_comment(
        message_id: str, name: Any, comment: Any, store: DocumentStore | None = None
    ) -> list[dict[str, Any]]:
        """Append a comment and return the whole thread."""
        if not name or not comment:
            raise ValidationError(
                "Name and comment are required.", kind="MissingFields"
            )
        store = CommentService._store(store)
        key = sanitize_name(message_id)
        with document_locks.hold(f"{COMMENTS_COLLECTION}:{key}"):
            thread = CommentService._thread(store, key)
            thread.append({"name": name, "comment": comment})
            store.put(key, thread)
        return thread
