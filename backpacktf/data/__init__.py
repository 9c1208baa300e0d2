"""Event feed ingestion: frame decoding, payload classification and streaming."""

from .channel import ChannelClosed, Receiver
from .classifier import PayloadDecodeError, classify
from .envelope import Envelope, EventKind, FrameDecodeError, RawPayload, decode_frame
from .listing import TRACKED_APPID, Listing, ListingDecodeError, decode_listing
from .messages import (
    ClientLimitExceeded,
    ListingDelete,
    ListingDeleteOtherApp,
    ListingUpdate,
    ListingUpdateOtherApp,
    Message,
)
from .websocket import EVENTS_URL, EventReader, FeedConnectError, connect

__all__ = [
    "ChannelClosed",
    "Receiver",
    "PayloadDecodeError",
    "classify",
    "Envelope",
    "EventKind",
    "FrameDecodeError",
    "RawPayload",
    "decode_frame",
    "TRACKED_APPID",
    "Listing",
    "ListingDecodeError",
    "decode_listing",
    "ClientLimitExceeded",
    "ListingDelete",
    "ListingDeleteOtherApp",
    "ListingUpdate",
    "ListingUpdateOtherApp",
    "Message",
    "EVENTS_URL",
    "EventReader",
    "FeedConnectError",
    "connect",
]
