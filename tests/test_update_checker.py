import unittest
import sys
import os
from unittest.mock import patch, MagicMock

import requests

# Pfad zum Projektverzeichnis hinzufügen, damit die Module importiert werden können
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import update_checker


def release_response(tag, body="notes"):
    response = MagicMock()
    response.json.return_value = {"tag_name": tag, "body": body}
    response.raise_for_status.return_value = None
    return response


class TestUpdateChecker(unittest.TestCase):
    """Testklasse für die Updateprüfung"""

    @patch("update_checker.requests.get")
    def test_newer_version(self, mock_get):
        mock_get.return_value = release_response("v0.5.0")
        available, latest, notes = update_checker.check_for_updates("0.4.0", owner="o", repo="r")
        self.assertTrue(available)
        self.assertEqual(latest, "0.5.0")
        self.assertEqual(notes, "notes")
        mock_get.assert_called_once_with("https://api.github.com/repos/o/r/releases/latest", timeout=5)

    @patch("update_checker.requests.get")
    def test_same_version(self, mock_get):
        mock_get.return_value = release_response("0.4.0")
        available, latest, _ = update_checker.check_for_updates("0.4.0", owner="o", repo="r")
        self.assertFalse(available)
        self.assertEqual(latest, "0.4.0")

    @patch("update_checker.requests.get")
    def test_network_error_is_not_fatal(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        available, latest, _ = update_checker.check_for_updates("0.4.0", owner="o", repo="r")
        self.assertFalse(available, "Netzwerkfehler darf kein Update melden")
        self.assertEqual(latest, "0.4.0")


if __name__ == "__main__":
    unittest.main()
