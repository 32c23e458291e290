import unittest
import sys
import os

from watchdog.events import FileCreatedEvent, FileModifiedEvent, DirModifiedEvent

# Pfad zum Projektverzeichnis hinzufügen, damit die Module importiert werden können
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from watchdog_handler import ClientLogHandler, start_watchdog


class TestClientLogHandler(unittest.TestCase):

    def setUp(self):
        self.calls = []
        self.handler = ClientLogHandler(lambda created: self.calls.append(created), "*_client.log")

    def test_only_client_logs(self):
        self.handler.on_modified(FileModifiedEvent("/logs/2026-01-01_client.log"))
        self.handler.on_modified(FileModifiedEvent("/logs/server.log"))
        self.handler.on_modified(DirModifiedEvent("/logs"))
        self.handler.on_created(FileCreatedEvent("/logs/2026-01-02_client.log"))
        self.assertEqual(self.calls, [False, True])

    def test_no_directories(self):
        self.assertIsNone(start_watchdog(["/does/not/exist"], lambda created: None))


if __name__ == "__main__":
    unittest.main()
