import unittest
import sys
import os
import tempfile
import shutil

# Pfad zum Projektverzeichnis hinzufügen, damit die Module importiert werden können
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config

SETTINGS = ("LOGGING_ENABLED", "LOGGING_LEVEL", "SHOW_WORLD_NAME", "SHOW_SERVER_IP", "POLL_INTERVAL",
            "DEBOUNCE_FLOOR_SECONDS", "BACKOFF_INITIAL", "BACKOFF_CAP_SECONDS", "EXTRA_LOG_DIRS")


class TestConfig(unittest.TestCase):
    """Testklasse für das Laden und Speichern der Konfiguration"""

    def setUp(self):
        self.saved = {name: getattr(config, name) for name in SETTINGS}
        self.temp_dir = tempfile.mkdtemp()
        self.config_file = os.path.join(self.temp_dir, "config.txt")

    def tearDown(self):
        for name, value in self.saved.items():
            setattr(config, name, value)
        shutil.rmtree(self.temp_dir)

    def _write(self, text):
        with open(self.config_file, "w", encoding="utf-8") as f:
            f.write(text)

    def test_load_values(self):
        self._write("# Kommentar\n"
                    "SHOW_SERVER_IP=false\n"
                    "poll_interval = 10\n"
                    "LOGGING_LEVEL=debug\n"
                    "LOG_DIRS=/tmp/a; /tmp/b ;\n"
                    "UNKNOWN=1\n")
        config.load_config(self.config_file)
        self.assertFalse(config.SHOW_SERVER_IP)
        self.assertEqual(config.POLL_INTERVAL, 10)
        self.assertEqual(config.LOGGING_LEVEL, "DEBUG")
        self.assertEqual(config.EXTRA_LOG_DIRS, ["/tmp/a", "/tmp/b"])

    def test_invalid_and_out_of_range(self):
        self._write("POLL_INTERVAL=abc\nDEBOUNCE_FLOOR_SECONDS=-5\nBACKOFF_INITIAL=20\nBACKOFF_CAP_SECONDS=5\n")
        config.POLL_INTERVAL = 3
        config.load_config(self.config_file)
        self.assertEqual(config.POLL_INTERVAL, 3, "Ungültiger Wert hat den Standard überschrieben")
        self.assertEqual(config.DEBOUNCE_FLOOR_SECONDS, 0)
        self.assertEqual(config.BACKOFF_CAP_SECONDS, 20, "Obergrenze kleiner als Startwert")

    def test_missing_file_is_created(self):
        config.load_config(self.config_file)
        self.assertTrue(os.path.exists(self.config_file))

        config.SHOW_WORLD_NAME = False
        config.save_config(self.config_file)
        config.SHOW_WORLD_NAME = True
        config.load_config(self.config_file)
        self.assertFalse(config.SHOW_WORLD_NAME)

    def test_extra_log_dirs_come_first(self):
        config.EXTRA_LOG_DIRS = [self.temp_dir]
        directories = config.get_log_directories()
        self.assertEqual(str(directories[0]), self.temp_dir)
        self.assertGreater(len(directories), 1)


if __name__ == "__main__":
    unittest.main()
