"""Messages delivered to consumers of the event feed."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from .envelope import RawPayload
from .listing import Listing


@dataclass(frozen=True)
class ListingUpdate:
    """A listing for the tracked application was created or updated."""

    kind: ClassVar[str] = "listing_update"

    listing: Listing


@dataclass(frozen=True)
class ListingDelete:
    """A listing for the tracked application was deleted."""

    kind: ClassVar[str] = "listing_delete"

    listing: Listing


@dataclass(frozen=True)
class ListingUpdateOtherApp:
    """A listing for another application was updated.

    Listings of other games are not modelled, so the payload is passed through
    as received. Use :meth:`json` to decode it.
    """

    kind: ClassVar[str] = "listing_update_other_app"

    appid: int
    payload: RawPayload

    def json(self) -> Any:
        return json.loads(self.payload.text)


@dataclass(frozen=True)
class ListingDeleteOtherApp:
    """A listing for another application was deleted."""

    kind: ClassVar[str] = "listing_delete_other_app"

    appid: int
    payload: RawPayload

    def json(self) -> Any:
        return json.loads(self.payload.text)


@dataclass(frozen=True)
class ClientLimitExceeded:
    """The server reports that this client exceeded its connection limit."""

    kind: ClassVar[str] = "client_limit_exceeded"

    message: str


Message = Union[
    ListingUpdate,
    ListingDelete,
    ListingUpdateOtherApp,
    ListingDeleteOtherApp,
    ClientLimitExceeded,
]


__all__ = [
    "ClientLimitExceeded",
    "ListingDelete",
    "ListingDeleteOtherApp",
    "ListingUpdate",
    "ListingUpdateOtherApp",
    "Message",
]
