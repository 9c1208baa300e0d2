import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from backpacktf.infra.config import AppConfig, load_config, parse_config


class LoadConfigTest(unittest.TestCase):
    def test_reads_yaml_sections(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.yaml"
            path.write_text(
                "feed:\n"
                "  websocket_url: wss://example.test/events\n"
                "  tracked_appid: 730\n"
                "  channel_capacity: 5\n"
                "  headers:\n"
                "    X-Token: abc\n"
                "logging:\n"
                "  level: debug\n"
                "  format: text\n"
                "dashboard:\n"
                "  enable: true\n"
                "  port: 9000\n",
                encoding="utf-8",
            )

            cfg = load_config(path)

        self.assertEqual("wss://example.test/events", cfg.feed.websocket_url)
        self.assertEqual(730, cfg.feed.tracked_appid)
        self.assertEqual(5, cfg.feed.channel_capacity)
        self.assertEqual({"X-Token": "abc"}, cfg.feed.headers)
        self.assertEqual("text", cfg.logging.format)
        self.assertTrue(cfg.dashboard.enable)
        self.assertEqual(9000, cfg.dashboard.port)
        self.assertFalse(cfg.metrics.emit_textfile)

    def test_missing_file_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertLogs("backpacktf.infra.config", level="WARNING"):
                cfg = load_config(Path(tmp) / "absent.yaml")

        self.assertEqual(AppConfig(), cfg)
        self.assertEqual("wss://ws.backpack.tf/events", cfg.feed.websocket_url)
        self.assertEqual(440, cfg.feed.tracked_appid)
        self.assertEqual(100, cfg.feed.channel_capacity)

    def test_config_path_from_environment(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "env.yaml"
            path.write_text("feed:\n  channel_capacity: 7\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {"CONFIG_PATH": str(path)}):
                cfg = load_config()

        self.assertEqual(7, cfg.feed.channel_capacity)

    def test_rejects_invalid_capacity(self) -> None:
        with self.assertRaises(ValueError):
            parse_config({"feed": {"channel_capacity": 0}})


if __name__ == "__main__":
    unittest.main()
