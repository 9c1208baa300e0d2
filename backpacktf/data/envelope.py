"""Decoding of event feed frames into envelopes.

A text frame carries a JSON array of envelope objects::

    [{"id": "...", "event": "listing-update", "payload": {...}}, ...]

The payload of each envelope is not interpreted here. Its exact source text is
kept alongside the parsed value so a payload can be forwarded untouched when it
turns out to belong to another application.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Tuple, Union

_WHITESPACE = re.compile(r"[ \t\n\r]*")


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise _ScanError(f"invalid number {name!r}")


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


class EventKind(str, Enum):
    """Event discriminators understood by the feed client."""

    LISTING_UPDATE = "listing-update"
    LISTING_DELETE = "listing-delete"
    CLIENT_LIMIT_EXCEEDED = "client-limit-exceeded"


class FrameDecodeError(ValueError):
    """The frame is not a JSON array of well-formed envelopes."""

    def __init__(self, reason: str, frame: Union[str, bytes]) -> None:
        super().__init__(reason)
        self.reason = reason
        self.frame = frame


@dataclass(frozen=True)
class RawPayload:
    """A payload kept as its original JSON text.

    ``text`` is the exact slice of the frame the payload was read from;
    :meth:`value` returns the parsed JSON value.
    """

    text: str
    _value: Any = field(default=None, repr=False, compare=False)

    def value(self) -> Any:
        if self._value is None and self.text != "null":
            object.__setattr__(self, "_value", json.loads(self.text))
        return self._value

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Envelope:
    id: str
    event: EventKind
    payload: RawPayload


def decode_frame(frame: Union[str, bytes]) -> List[Envelope]:
    """Decode one frame into its envelopes, in frame order.

    Raises :class:`FrameDecodeError` if the frame is not valid UTF-8, is not a
    JSON array, or contains an envelope that is malformed or carries an unknown
    event kind. A single bad envelope rejects the whole frame.
    """

    if isinstance(frame, (bytes, bytearray)):
        try:
            text = bytes(frame).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FrameDecodeError(f"invalid utf-8: {exc}", frame) from exc
    else:
        text = frame

    try:
        return _scan_frame(text)
    except json.JSONDecodeError as exc:
        raise FrameDecodeError(str(exc), frame) from exc
    except _ScanError as exc:
        raise FrameDecodeError(str(exc), frame) from None
    except RecursionError:
        raise FrameDecodeError("recursion limit exceeded", frame) from None


class _ScanError(Exception):
    pass


def _skip(text: str, idx: int) -> int:
    return _WHITESPACE.match(text, idx).end()


def _expect(text: str, idx: int, token: str) -> int:
    if text[idx:idx + 1] != token:
        found = text[idx:idx + 1] or "end of input"
        raise _ScanError(f"expected '{token}' at position {idx}, found {found!r}")
    return idx + 1


def _scan_frame(text: str) -> List[Envelope]:
    idx = _skip(text, 0)
    if text[idx:idx + 1] != "[":
        raise _ScanError("expected a JSON array of events")
    idx = _skip(text, idx + 1)

    envelopes: List[Envelope] = []
    if text[idx:idx + 1] == "]":
        idx += 1
    else:
        while True:
            envelope, idx = _scan_envelope(text, idx)
            envelopes.append(envelope)
            idx = _skip(text, idx)
            if text[idx:idx + 1] == ",":
                idx = _skip(text, idx + 1)
                continue
            idx = _expect(text, idx, "]")
            break

    idx = _skip(text, idx)
    if idx != len(text):
        raise _ScanError(f"trailing data at position {idx}")
    return envelopes


def _scan_envelope(text: str, idx: int) -> Tuple[Envelope, int]:
    idx = _skip(text, _expect(text, idx, "{"))
    members = {}

    if text[idx:idx + 1] == "}":
        idx += 1
    else:
        while True:
            if text[idx:idx + 1] != '"':
                raise _ScanError(f"expected an object key at position {idx}")
            key, idx = _DECODER.raw_decode(text, idx)
            idx = _skip(text, _expect(text, _skip(text, idx), ":"))
            start = idx
            value, idx = _DECODER.raw_decode(text, idx)
            members[key] = (value, text[start:idx])
            idx = _skip(text, idx)
            if text[idx:idx + 1] == ",":
                idx = _skip(text, idx + 1)
                continue
            idx = _expect(text, idx, "}")
            break

    return _build_envelope(members), idx


def _build_envelope(members: dict) -> Envelope:
    for name in ("id", "event", "payload"):
        if name not in members:
            raise _ScanError(f"missing field `{name}`")

    event_id = members["id"][0]
    if not isinstance(event_id, str):
        raise _ScanError("`id` must be a string")

    event = members["event"][0]
    try:
        kind = EventKind(event)
    except ValueError:
        raise _ScanError(f"unknown event {event!r}") from None

    value, raw = members["payload"]
    return Envelope(id=event_id, event=kind, payload=RawPayload(raw, value))


__all__ = ["Envelope", "EventKind", "FrameDecodeError", "RawPayload", "decode_frame"]
