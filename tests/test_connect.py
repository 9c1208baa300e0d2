import asyncio
import json
import unittest
from unittest import mock

from websockets.exceptions import InvalidURI

from backpacktf.data.channel import Receiver
from backpacktf.data.messages import ClientLimitExceeded
from backpacktf.data.websocket import EVENTS_URL, FeedConnectError, connect


class StubConnection:
    def __init__(self, frames) -> None:
        self.frames = list(frames)
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            await asyncio.sleep(0)
            yield frame

    async def close(self) -> None:
        self.closed = True


class ConnectTest(unittest.IsolatedAsyncioTestCase):
    async def test_returns_receiver_fed_by_background_reader(self) -> None:
        stub = StubConnection([json.dumps([{"id": "1", "event": "client-limit-exceeded", "payload": {"message": "hi"}}])])

        with mock.patch("websockets.connect", new=mock.AsyncMock(return_value=stub)) as connect_mock:
            receiver = await connect(headers={"X-Test": "1"}, user_agent="tests/1.0")

        self.assertIsInstance(receiver, Receiver)
        args, kwargs = connect_mock.call_args
        self.assertEqual((EVENTS_URL,), args)
        self.assertEqual({"X-Test": "1"}, kwargs["additional_headers"])
        self.assertEqual("tests/1.0", kwargs["user_agent_header"])

        items = [item async for item in receiver]
        self.assertEqual([("1", ClientLimitExceeded("hi"))], items)
        self.assertTrue(stub.closed)

    async def test_handshake_failure_raises_connect_error(self) -> None:
        failure = ConnectionRefusedError(111, "Connection refused")

        with mock.patch("websockets.connect", new=mock.AsyncMock(side_effect=failure)):
            with self.assertRaises(FeedConnectError) as ctx:
                await connect("wss://localhost:1/events")

        self.assertIs(failure, ctx.exception.__cause__)

    async def test_invalid_uri_raises_connect_error(self) -> None:
        with mock.patch("websockets.connect", new=mock.AsyncMock(side_effect=InvalidURI("http://x", "scheme isn't ws or wss"))):
            with self.assertRaises(FeedConnectError):
                await connect("http://x")


if __name__ == "__main__":
    unittest.main()
