"""Tests for the comments blueprint."""

import unittest

from tests.helpers import FirestoreAppTestCase


class CommentsTestCase(FirestoreAppTestCase):
    """Test case for message comment threads."""

    def test_empty_thread(self):
        response = self.client.get("/api/comments/12345")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), [])

    def test_add_and_list(self):
        for name, comment in [("Alice", "First!"), ("Bob", "Second")]:
            response = self.client.post(
                "/api/comments/12345", json={"name": name, "comment": comment}
            )
            self.assertEqual(response.status_code, 200)
            self.assertTrue(response.get_json()["success"])

        response = self.client.get("/api/comments/12345")
        self.assertEqual(
            response.get_json(),
            [
                {"name": "Alice", "comment": "First!"},
                {"name": "Bob", "comment": "Second"},
            ],
        )

    def test_missing_fields(self):
        response = self.client.post("/api/comments/12345", json={"name": "Alice"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.error_kind(response), "MissingFields")

    def test_corrupt_thread(self):
        self.mock_db.collection("comments").document("12345").set(
            {"data": '{"not": "a list"}'}
        )
        response = self.client.get("/api/comments/12345")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(self.error_kind(response), "CorruptDocument")


if __name__ == "__main__":
    unittest.main()
