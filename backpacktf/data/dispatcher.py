"""Forwarding of classified envelopes to the feed consumer."""

from __future__ import annotations

from .channel import Sender
from .classifier import classify
from .envelope import Envelope
from .listing import TRACKED_APPID
from .messages import Message


class EventDispatcher:
    """Classify envelopes and send ``(event_id, message)`` pairs downstream.

    :meth:`dispatch` raises :class:`~backpacktf.data.classifier.PayloadDecodeError`
    for a malformed payload (nothing is sent) and
    :class:`~backpacktf.data.channel.ChannelClosed` once the consumer is gone.
    """

    def __init__(self, sender: Sender, tracked_appid: int = TRACKED_APPID) -> None:
        self.sender = sender
        self.tracked_appid = tracked_appid

    async def dispatch(self, envelope: Envelope) -> Message:
        message = classify(envelope, self.tracked_appid)
        await self.sender.send((envelope.id, message))
        return message

    def close(self) -> None:
        self.sender.close()


__all__ = ["EventDispatcher"]
