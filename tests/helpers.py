"""Base test cases shared by the route tests."""

from __future__ import annotations

import json
import unittest
from typing import Any
from unittest.mock import patch

from mockfirestore import MockFirestore

from bracketeer import create_app
from tests.conftest import mock_firestore_module


class FirestoreAppTestCase(unittest.TestCase):
    """Runs the app against an in-memory Firestore."""

    def setUp(self) -> None:
        """Set up a test client backed by mockfirestore."""
        self.mock_db = MockFirestore()
        self.mock_firestore_module = mock_firestore_module(self.mock_db)

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "firestore_storage": patch(
                "bracketeer.storage.firestore", new=self.mock_firestore_module
            ),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app({"TESTING": True, "SERVER_NAME": "localhost"})
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()

    def tearDown(self) -> None:
        """Tear down the app context."""
        self.app_context.pop()

    def stored(self, collection: str, key: str) -> Any:
        """Decode a document straight out of the mock database."""
        snapshot = self.mock_db.collection(collection).document(key).get()
        if not snapshot.exists:
            return None
        return json.loads(snapshot.to_dict()["data"])

    def error_kind(self, response: Any) -> str:
        return response.get_json()["error"]["kind"]
