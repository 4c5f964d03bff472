"""Document stores holding one JSON document per key.

The bracket code only ever needs ``get``, ``put``, ``delete`` and
``list_keys``. Two backends implement that contract: Firestore (the default)
and a directory of ``<key>.json`` files.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
import tempfile
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING, Protocol

from firebase_admin import firestore
from flask import current_app
from google.api_core import exceptions as google_exceptions

from .core.constants import COLLECTIONS, STORE_FILESYSTEM, STORE_FIRESTORE
from .core.types import JSONValue
from .errors import InternalError

if TYPE_CHECKING:
    from flask import Flask
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.collection import CollectionReference

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_name(name: str | None) -> str:
    """Turn a human-supplied name into a store key.

    Surrounding whitespace is dropped and every character outside
    ``[A-Za-z0-9_-]`` becomes ``_``. Distinct names may collide.
    """
    if not name:
        return ""
    return _UNSAFE_KEY_CHARS.sub("_", name.strip())


class DocumentStore(Protocol):
    """Key to JSON-document mapping."""

    def get(self, key: str) -> JSONValue: ...

    def put(self, key: str, document: JSONValue) -> None: ...

    def delete(self, key: str) -> None: ...

    def list_keys(self) -> list[str]: ...


class FirestoreDocumentStore:
    """Keep each document in one Firestore collection.

    The JSON text lives in the ``data`` field of a Firestore document whose
    id is the key. Firestore cannot hold arrays nested directly in arrays,
    which bracket pairings are.
    """

    def __init__(self, collection: str, client: Client | None = None) -> None:
        self.collection = collection
        self._client = client

    def _collection(self) -> CollectionReference:
        db = self._client if self._client is not None else firestore.client()
        return db.collection(self.collection)

    def get(self, key: str) -> JSONValue:
        try:
            snapshot = self._collection().document(key).get()
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore read of {self.collection}/{key} failed: {e}")
            raise InternalError(f"Could not read '{key}'.") from e

        if not snapshot.exists:
            return None
        raw = (snapshot.to_dict() or {}).get("data")
        if not isinstance(raw, str):
            raise InternalError(
                f"Stored document '{key}' has no data.", kind="CorruptDocument"
            )
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise InternalError(
                f"Stored document '{key}' is not valid JSON.", kind="CorruptDocument"
            ) from e

    def put(self, key: str, document: JSONValue) -> None:
        payload = {
            "key": key,
            "data": json.dumps(document),
            "updatedAt": firestore.SERVER_TIMESTAMP,
        }
        try:
            self._collection().document(key).set(payload)
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore write of {self.collection}/{key} failed: {e}")
            raise InternalError(f"Could not save '{key}'.") from e

    def delete(self, key: str) -> None:
        try:
            ref = self._collection().document(key)
            if ref.get().exists:
                ref.delete()
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore delete of {self.collection}/{key} failed: {e}")
            raise InternalError(f"Could not delete '{key}'.") from e

    def list_keys(self) -> list[str]:
        try:
            return sorted(doc.id for doc in self._collection().stream())
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore listing of {self.collection} failed: {e}")
            raise InternalError("Could not list documents.") from e


class FileDocumentStore:
    """Keep each document as ``<key>.json`` in a directory."""

    SUFFIX = ".json"

    def __init__(self, directory: str) -> None:
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, key + self.SUFFIX)

    def get(self, key: str) -> JSONValue:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise InternalError(
                f"Stored document '{key}' is not valid JSON.", kind="CorruptDocument"
            ) from e
        except OSError as e:
            logger.error(f"Reading {path} failed: {e}")
            raise InternalError(f"Could not read '{key}'.") from e

    def put(self, key: str, document: JSONValue) -> None:
        # Write to a sibling temp file and swap it in so readers never see a
        # half-written document.
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self._path(key))
        except OSError as e:
            logger.error(f"Writing {self._path(key)} failed: {e}")
            raise InternalError(f"Could not save '{key}'.") from e

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Deleting {self._path(key)} failed: {e}")
            raise InternalError(f"Could not delete '{key}'.") from e

    def list_keys(self) -> list[str]:
        try:
            names = os.listdir(self.directory)
        except OSError as e:
            logger.error(f"Listing {self.directory} failed: {e}")
            raise InternalError("Could not list documents.") from e
        return sorted(
            name[: -len(self.SUFFIX)] for name in names if name.endswith(self.SUFFIX)
        )


class _KeyEntry:
    """A key's lock and how many callers are holding or waiting on it."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLock:
    """One in-process lock per document key.

    A key's entry only lives while someone holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _KeyEntry] = {}

    def _acquire(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyEntry()
            entry.users += 1
        entry.lock.acquire()

    def _release(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry.lock.release()
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextlib.contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Hold the locks of all ``keys``, taken in sorted order."""
        with contextlib.ExitStack() as stack:
            for key in sorted(set(keys)):
                self._acquire(key)
                stack.callback(self._release, key)
            yield


document_locks = KeyedLock()


def init_stores(app: Flask) -> None:
    """Build one store per collection for the configured backend."""
    backend = app.config["DOCUMENT_STORE"]
    stores: dict[str, DocumentStore]
    if backend == STORE_FIRESTORE:
        stores = {name: FirestoreDocumentStore(name) for name in COLLECTIONS}
    elif backend == STORE_FILESYSTEM:
        stores = {
            name: FileDocumentStore(os.path.join(app.config["DATA_DIR"], name))
            for name in COLLECTIONS
        }
    else:
        raise ValueError(f"Unknown DOCUMENT_STORE backend: {backend!r}")
    app.extensions["document_stores"] = stores
    app.logger.info(f"Using the {backend} document store.")


def get_store(collection: str) -> DocumentStore:
    """Return the current app's store for ``collection``."""
    return current_app.extensions["document_stores"][collection]
