"""Streaming client for the backpack.tf listing event feed.

:func:`connect` opens the WebSocket, schedules an :class:`EventReader` task on
the running loop and hands back a :class:`~backpacktf.data.channel.Receiver`::

    receiver = await connect()
    async for event_id, message in receiver:
        ...

The reader survives malformed frames and payloads, logging and skipping them.
It stops when the server closes the connection, the connection drops, or the
receiver is closed or garbage collected. There is no reconnection; callers
that want one call :func:`connect` again once iteration ends.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, Callable, Dict, Mapping, Optional, Set, Union

import websockets
from websockets.exceptions import ConnectionClosedError, InvalidHandshake, InvalidURI, WebSocketException

from backpacktf.infra.logging import preview

from .channel import ChannelClosed, Receiver, open_channel
from .classifier import PayloadDecodeError
from .dispatcher import EventDispatcher
from .envelope import FrameDecodeError, decode_frame
from .listing import TRACKED_APPID

EVENTS_URL = "wss://ws.backpack.tf/events"
DEFAULT_CHANNEL_CAPACITY = 100
# listing frames regularly exceed the library's 1 MiB default
DEFAULT_MAX_FRAME_SIZE = 64 * 1024 * 1024

Frame = Union[str, bytes]

# strong references so running readers are not garbage collected
_background_tasks: Set["asyncio.Task[None]"] = set()


class FeedConnectError(Exception):
    """The event feed connection could not be established."""


class EventReader:
    """Drives decode, classify and dispatch over a stream of frames."""

    def __init__(
        self,
        dispatcher: EventDispatcher,
        metrics_callback: Optional[Callable[[str, Dict[str, float]], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.metrics_callback = metrics_callback
        self.logger = logger or logging.getLogger(__name__)

    async def run(self, stream: AsyncIterable[Frame]) -> None:
        """Consume ``stream`` until it ends, fails, or the consumer goes away.

        The dispatcher is closed and the stream (when it has a ``close``
        coroutine) is closed on exit.
        """

        try:
            async for frame in stream:
                if isinstance(frame, str):
                    if not await self.handle_text(frame):
                        return
                else:
                    self.logger.debug(
                        "Received unexpected binary message",
                        extra={"event": "unexpected_binary_frame", "size": len(frame)},
                    )
                    self._emit_metrics("binary_frame", {"size": float(len(frame))})
            self.logger.info(
                "Event feed closed by server",
                extra={"event": "feed_closed", **_close_details(stream)},
            )
        except ConnectionClosedError as exc:
            self.logger.warning("Event feed connection dropped: %s", exc, extra={"event": "feed_dropped"})
        except (WebSocketException, OSError) as exc:
            self.logger.warning("Event feed transport error: %s", exc, extra={"event": "feed_dropped"})
        except Exception as exc:
            self.logger.exception("Event reader failed: %s", exc, extra={"event": "feed_failed"})
        finally:
            self.dispatcher.close()
            close = getattr(stream, "close", None)
            if close is not None:
                await close()

    async def handle_text(self, frame: Frame) -> bool:
        """Process one text frame; return False once the consumer is gone."""

        if not frame:
            return True

        try:
            envelopes = decode_frame(frame)
        except FrameDecodeError as exc:
            self.logger.debug(
                "Error deserializing event: %s %s",
                exc.reason,
                preview(exc.frame),
                extra={"event": "frame_decode_failed"},
            )
            self._emit_metrics("frame_decode_failed", {})
            return True

        self._emit_metrics("frame", {"envelopes": float(len(envelopes))})
        for envelope in envelopes:
            try:
                message = await self.dispatcher.dispatch(envelope)
            except PayloadDecodeError as exc:
                self.logger.debug(
                    "Error deserializing event payload: %s\n\n%s",
                    exc.error,
                    preview(exc.payload.text),
                    extra={"event": "payload_decode_failed", "event_id": exc.event_id, "kind": exc.event.value},
                )
                self._emit_metrics("payload_decode_failed", {})
                continue
            except ChannelClosed:
                self.logger.debug("Receiver closed, stopping event reader", extra={"event": "consumer_gone"})
                return False
            except Exception:
                self.logger.exception(
                    "Unexpected error handling event %s",
                    envelope.id,
                    extra={"event": "envelope_failed", "event_id": envelope.id, "kind": envelope.event.value},
                )
                self._emit_metrics("envelope_failed", {})
                continue
            self._emit_metrics(f"message_{message.kind}", {})
        return True

    def _emit_metrics(self, name: str, values: Dict[str, float]) -> None:
        if not self.metrics_callback:
            return
        try:
            self.metrics_callback(name, values)
        except Exception as exc:  # pragma: no cover - external callback safety
            self.logger.debug("Metric callback failed for %s: %s", name, exc)


def _close_details(stream: object) -> Dict[str, object]:
    code = getattr(stream, "close_code", None)
    if code is None:
        return {}
    return {"close_code": code, "close_reason": getattr(stream, "close_reason", "")}


def spawn_reader(
    stream: AsyncIterable[Frame],
    *,
    tracked_appid: int = TRACKED_APPID,
    capacity: int = DEFAULT_CHANNEL_CAPACITY,
    metrics_callback: Optional[Callable[[str, Dict[str, float]], None]] = None,
    logger: Optional[logging.Logger] = None,
) -> Receiver:
    """Start an :class:`EventReader` over ``stream`` as a background task."""

    sender, receiver = open_channel(capacity)
    reader = EventReader(EventDispatcher(sender, tracked_appid), metrics_callback, logger)
    task = asyncio.get_running_loop().create_task(reader.run(stream), name="backpacktf-event-reader")
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return receiver


async def connect(
    url: str = EVENTS_URL,
    *,
    tracked_appid: int = TRACKED_APPID,
    capacity: int = DEFAULT_CHANNEL_CAPACITY,
    headers: Optional[Mapping[str, str]] = None,
    user_agent: Optional[str] = None,
    metrics_callback: Optional[Callable[[str, Dict[str, float]], None]] = None,
    logger: Optional[logging.Logger] = None,
) -> Receiver:
    """Connect to the event feed and return the receiving end of its messages.

    Raises :class:`FeedConnectError` if the URL is invalid or the handshake
    fails. Closing (or dropping) the returned receiver shuts the reader down.
    """

    logger = logger or logging.getLogger(__name__)
    options = {"additional_headers": dict(headers or {}), "max_size": DEFAULT_MAX_FRAME_SIZE}
    if user_agent:
        options["user_agent_header"] = user_agent

    try:
        stream = await websockets.connect(url, **options)
    except (InvalidURI, InvalidHandshake, OSError, asyncio.TimeoutError) as exc:
        raise FeedConnectError(f"failed to connect to {url}: {exc}") from exc

    logger.info("Connected to event feed", extra={"event": "feed_connected", "url": url})
    return spawn_reader(
        stream,
        tracked_appid=tracked_appid,
        capacity=capacity,
        metrics_callback=metrics_callback,
        logger=logger,
    )


__all__ = [
    "DEFAULT_CHANNEL_CAPACITY",
    "EVENTS_URL",
    "EventReader",
    "FeedConnectError",
    "connect",
    "spawn_reader",
]
