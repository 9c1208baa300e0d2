"""Classification of envelope payloads into feed messages.

Listing events from every game share one feed, while only Team Fortress 2
listings are modelled. A listing payload that fails to decode is therefore
probed for its ``appid``: another game's listing is passed through untouched,
whereas a malformed listing of the tracked game is reported as an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from .envelope import Envelope, EventKind, RawPayload
from .listing import TRACKED_APPID, Listing, ListingDecodeError, decode_listing
from .messages import (
    ClientLimitExceeded,
    ListingDelete,
    ListingDeleteOtherApp,
    ListingUpdate,
    ListingUpdateOtherApp,
    Message,
)

# appids are unsigned 32-bit integers
_MAX_APPID = 0xFFFFFFFF


class PayloadDecodeError(ValueError):
    """An envelope payload could not be turned into a message.

    The original :class:`ListingDecodeError` is available as ``__cause__``.
    """

    def __init__(self, event_id: str, event: EventKind, payload: RawPayload, error: Exception) -> None:
        super().__init__(f"error decoding {event.value} payload for event {event_id}: {error}")
        self.event_id = event_id
        self.event = event
        self.payload = payload
        self.error = error


@dataclass(frozen=True)
class Matched:
    listing: Listing


@dataclass(frozen=True)
class OtherApp:
    appid: int
    payload: RawPayload


@dataclass(frozen=True)
class Malformed:
    error: ListingDecodeError


ListingOutcome = Union[Matched, OtherApp, Malformed]


def probe_appid(value: Any) -> Optional[int]:
    """Return the integer ``appid`` of a payload object, ignoring other fields."""

    if not isinstance(value, dict):
        return None
    appid = value.get("appid")
    if isinstance(appid, bool) or not isinstance(appid, int) or not 0 <= appid <= _MAX_APPID:
        return None
    return appid


def classify_listing(payload: RawPayload, tracked_appid: int = TRACKED_APPID) -> ListingOutcome:
    """Decode a listing payload, falling back to an ``appid`` probe.

    A payload whose probed ``appid`` equals ``tracked_appid`` (or has none)
    keeps the original decode error.
    """

    value = payload.value()
    try:
        return Matched(decode_listing(value, appid=tracked_appid))
    except ListingDecodeError as error:
        appid = probe_appid(value)
        if appid is not None and appid != tracked_appid:
            return OtherApp(appid, payload)
        return Malformed(error)


def client_limit_message(payload: RawPayload) -> str:
    value = payload.value()
    if isinstance(value, dict) and isinstance(value.get("message"), str):
        return value["message"]
    return payload.text


def classify(envelope: Envelope, tracked_appid: int = TRACKED_APPID) -> Message:
    """Turn one envelope into exactly one message.

    Raises :class:`PayloadDecodeError` when a listing payload is malformed.
    ``client-limit-exceeded`` envelopes always classify.
    """

    if envelope.event is EventKind.CLIENT_LIMIT_EXCEEDED:
        return ClientLimitExceeded(client_limit_message(envelope.payload))

    outcome = classify_listing(envelope.payload, tracked_appid)
    is_update = envelope.event is EventKind.LISTING_UPDATE

    if isinstance(outcome, Matched):
        return ListingUpdate(outcome.listing) if is_update else ListingDelete(outcome.listing)
    if isinstance(outcome, OtherApp):
        if is_update:
            return ListingUpdateOtherApp(outcome.appid, outcome.payload)
        return ListingDeleteOtherApp(outcome.appid, outcome.payload)

    raise PayloadDecodeError(envelope.id, envelope.event, envelope.payload, outcome.error) from outcome.error


__all__ = [
    "ListingOutcome",
    "Malformed",
    "Matched",
    "OtherApp",
    "PayloadDecodeError",
    "classify",
    "classify_listing",
    "client_limit_message",
    "probe_appid",
]
