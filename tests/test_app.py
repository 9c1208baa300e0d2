import asyncio
import json
import unittest
from unittest import mock

from backpacktf.app import consume
from backpacktf.dashboard.app import FeedState
from backpacktf.data.websocket import spawn_reader
from backpacktf.infra.config import AppConfig
from backpacktf.infra.metrics import MetricsSink


class StubConnection:
    def __init__(self, frames) -> None:
        self.frames = list(frames)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            await asyncio.sleep(0)
            yield frame

    async def close(self) -> None:
        pass


class ConsumeTest(unittest.IsolatedAsyncioTestCase):
    async def test_records_messages_until_feed_ends(self) -> None:
        frames = [
            json.dumps(
                [
                    {"id": "1", "event": "listing-delete", "payload": {"appid": 730}},
                    {"id": "2", "event": "client-limit-exceeded", "payload": {"message": "limit"}},
                ]
            )
        ]
        state = FeedState()
        metrics = MetricsSink()

        async def fake_connect(url, **kwargs):
            return spawn_reader(StubConnection(frames), metrics_callback=kwargs["metrics_callback"])

        with mock.patch("backpacktf.app.connect", new=fake_connect):
            await consume(AppConfig(), state, metrics, asyncio.Event())

        self.assertEqual("closed", state.status)
        self.assertEqual(["1", "2"], [event["id"] for event in state.recent()])
        self.assertEqual(1, metrics.count("message_listing_delete_other_app"))


if __name__ == "__main__":
    unittest.main()
