import unittest
import sys
import os
from unittest.mock import patch, MagicMock

import psutil

# Pfad zum Projektverzeichnis hinzufügen, damit die Module importiert werden können
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from process_monitor import ProcessMonitor, ProcessStatus, name_matches


def fake_process(name):
    proc = MagicMock()
    proc.info = {"name": name}
    return proc


class TestProcessMonitor(unittest.TestCase):
    """Testklasse für die Prozessüberwachung"""

    def setUp(self):
        self.monitor = ProcessMonitor(["hytaleclient"], ["discord"], max_failures=3)

    @patch("process_monitor.psutil.process_iter")
    def test_detects_processes(self, mock_iter):
        mock_iter.return_value = [fake_process("HytaleClient.exe"), fake_process("Discord"), fake_process("bash")]
        self.assertEqual(self.monitor.poll(), ProcessStatus(True, True))

        mock_iter.return_value = [fake_process("bash")]
        self.assertEqual(self.monitor.poll(), ProcessStatus(False, False))

    @patch("process_monitor.psutil.process_iter")
    def test_failure_keeps_previous_then_degrades(self, mock_iter):
        """Drei Fehlschläge in Folge: beide Flags auf False"""
        mock_iter.return_value = [fake_process("hytaleclient"), fake_process("discord")]
        self.monitor.poll()

        mock_iter.side_effect = psutil.AccessDenied()
        self.assertEqual(self.monitor.poll(), ProcessStatus(True, True), "Vorheriger Wert wurde nicht behalten")
        self.assertEqual(self.monitor.poll(), ProcessStatus(True, True))
        self.assertEqual(self.monitor.poll(), ProcessStatus(False, False), "Nach 3 Fehlern nicht auf False gesetzt")

        mock_iter.side_effect = None
        mock_iter.return_value = [fake_process("discord")]
        self.assertEqual(self.monitor.poll(), ProcessStatus(False, True))
        self.assertEqual(self.monitor.consecutive_failures, 0)

    def test_name_matching(self):
        self.assertTrue(name_matches("Discord.exe", ["discord"]))
        self.assertTrue(name_matches("discord", ["discord"]))
        self.assertFalse(name_matches("discordbot", ["discord"]))
        self.assertFalse(name_matches("hytalelauncher", ["hytale"]))


if __name__ == "__main__":
    unittest.main()
