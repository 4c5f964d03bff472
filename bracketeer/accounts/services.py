"""Service layer for user accounts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from werkzeug.security import check_password_hash, generate_password_hash

from bracketeer.core.constants import PROFILE_FIELDS, USERS_COLLECTION
from bracketeer.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from bracketeer.storage import document_locks, get_store, sanitize_name

if TYPE_CHECKING:
    from bracketeer.storage import DocumentStore

logger = logging.getLogger(__name__)


def _lock_key(key: str) -> str:
    return f"{USERS_COLLECTION}:{key}"


class AccountService:
    """Registration, login and profile updates for user documents."""

    @staticmethod
    def _store(store: DocumentStore | None) -> DocumentStore:
        return store if store is not None else get_store(USERS_COLLECTION)

    @staticmethod
    def _load(store: DocumentStore, username: str) -> tuple[str, dict[str, Any]]:
        key = sanitize_name(username)
        user = store.get(key)
        if user is None:
            raise NotFoundError("User not found.")
        if not isinstance(user, dict) or not isinstance(user.get("password"), str):
            raise InternalError(
                f"Stored user '{key}' is corrupt.", kind="CorruptDocument"
            )
        return key, user

    @staticmethod
    def register(
        username: str,
        password: str,
        profile: dict[str, Any] | None = None,
        store: DocumentStore | None = None,
    ) -> str:
        """Create a user with a hashed password and return the stored username."""
        store = AccountService._store(store)
        key = sanitize_name(username)
        profile = profile or {}
        user = {field: profile.get(field) or "" for field in PROFILE_FIELDS}
        user["stats"] = profile.get("stats") or {}
        user["username"] = key
        user["password"] = generate_password_hash(password, method="pbkdf2:sha256")

        with document_locks.hold(_lock_key(key)):
            if store.get(key) is not None:
                raise ConflictError("Username already exists.", kind="DuplicateUser")
            store.put(key, user)
        logger.info(f"Registered user '{key}'.")
        return key

    @staticmethod
    def check_credentials(
        username: str, password: str, store: DocumentStore | None = None
    ) -> bool:
        """Return whether the password matches. Missing users raise NotFound."""
        _, user = AccountService._load(AccountService._store(store), username)
        return check_password_hash(user["password"], password)

    @staticmethod
    def authenticate(
        username: str, password: str, store: DocumentStore | None = None
    ) -> dict[str, Any]:
        """Return the user document, or raise if the password is wrong."""
        _, user = AccountService._load(AccountService._store(store), username)
        if not check_password_hash(user["password"], password):
            raise UnauthorizedError()
        return user

    @staticmethod
    def update_profile(
        username: str,
        password: str,
        updates: dict[str, Any],
        store: DocumentStore | None = None,
    ) -> None:
        """Merge profile fields. The username and password hash are kept."""
        store = AccountService._store(store)
        key = sanitize_name(username)
        with document_locks.hold(_lock_key(key)):
            key, user = AccountService._load(store, username)
            if not check_password_hash(user["password"], password):
                raise UnauthorizedError()
            for field, value in updates.items():
                if field in ("username", "password"):
                    continue
                user[field] = value
            store.put(key, user)

    @staticmethod
    def public_profile(user: dict[str, Any]) -> dict[str, Any]:
        """Strip the password hash from a user document."""
        return {k: v for k, v in user.items() if k != "password"}
