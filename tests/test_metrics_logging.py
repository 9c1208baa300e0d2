import io
import json
import logging
import tempfile
import unittest
from pathlib import Path

from backpacktf.infra.logging import JsonFormatter, configure_logging, preview
from backpacktf.infra.metrics import MetricsSink


class MetricsSinkTest(unittest.TestCase):
    def test_observe_counts_and_records_gauges(self) -> None:
        sink = MetricsSink()

        sink.observe("frame", {"envelopes": 3})
        sink.observe("frame", {"envelopes": 1})

        self.assertEqual(2, sink.count("frame"))
        exported = sink.export()
        self.assertEqual(2, exported["backpacktf_events_frame_total"])
        self.assertEqual(1.0, exported["backpacktf_events_frame_envelopes"])

    def test_writes_prometheus_textfile(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "metrics.prom"
            sink = MetricsSink(metrics_file=path, emit_textfile=True)

            sink.callback()("message_listing_update", {})

            text = path.read_text(encoding="utf-8")
        self.assertIn("backpacktf_events_message_listing_update_total 1", text)


class LoggingTest(unittest.TestCase):
    def tearDown(self) -> None:
        logging.getLogger().handlers.clear()

    def test_json_formatter_merges_extras(self) -> None:
        stream = io.StringIO()
        configure_logging("DEBUG", "json", stream=stream)

        logging.getLogger("backpacktf.test").info("hello %s", "feed", extra={"event": "feed_connected"})

        record = json.loads(stream.getvalue().strip())
        self.assertEqual("hello feed", record["message"])
        self.assertEqual("feed_connected", record["event"])
        self.assertEqual("backpacktf.test", record["logger"])

    def test_text_format(self) -> None:
        stream = io.StringIO()
        configure_logging("INFO", "text", stream=stream)

        logging.getLogger("backpacktf.test").info("plain")

        self.assertIn("INFO backpacktf.test: plain", stream.getvalue())
        self.assertNotIsInstance(logging.getLogger().handlers[0].formatter, JsonFormatter)

    def test_preview(self) -> None:
        self.assertEqual("abc", preview(b"abc"))
        self.assertEqual("b'\\xff'", preview(b"\xff"))
        self.assertEqual("aa... (3 more)", preview("aaaaa", limit=2))


if __name__ == "__main__":
    unittest.main()
