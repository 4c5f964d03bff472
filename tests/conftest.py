"""Common utilities for tests."""

import unittest.mock

from mockfirestore import MockFirestore


def mock_firestore_module(db: MockFirestore) -> unittest.mock.MagicMock:
    """Build a stand-in for ``firebase_admin.firestore`` backed by ``db``."""
    module = unittest.mock.MagicMock()
    module.client.return_value = db
    module.SERVER_TIMESTAMP = "2023-01-01"
    return module


def tournament_document(name: str = "Cup", **overrides):
    """A freshly created tournament document, as the API stores it."""
    document = {
        "meta": {
            "name": name,
            "description": "",
            "themeColor": "",
            "streamUrl": "",
            "sponsor": {},
            "status": "Registration Open",
            "customFields": {},
        },
        "participants": [],
        "bracket": [],
        "matches": [],
        "roundNumber": 0,
        "standings": [],
    }
    document.update(overrides)
    return document
