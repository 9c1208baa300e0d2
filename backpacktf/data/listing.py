"""backpack.tf listing model decoded from REST responses and feed payloads.

Listings are decoded strictly: a payload either produces a :class:`Listing` or
raises :class:`ListingDecodeError`. The model only describes Team Fortress 2
items, so a payload whose ``appid`` belongs to another game is rejected as well.
Item attributes (quality, paint, spells, ...) are kept in their wire form.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import parse_qs, urlparse

APPID_TEAM_FORTRESS_2 = 440
TRACKED_APPID = APPID_TEAM_FORTRESS_2

_MISSING = object()
# count is an unsigned 32-bit field on the wire
_MAX_COUNT = 0xFFFFFFFF


class ListingDecodeError(ValueError):
    """Raised when a payload does not match the listing schema."""


class ListingIntent(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass
class Currencies:
    keys: float = 0.0
    metal: float = 0.0
    usd: Optional[float] = None


@dataclass
class Value:
    raw: float
    short: str
    long: str


@dataclass
class UserAgent:
    client: str
    last_pulse: datetime


@dataclass
class User:
    """The owner of a listing."""

    id: str
    name: str
    avatar: str
    avatar_full: str
    custom_name_style: str = ""
    accepted_suggestions: int = 0
    class_: str = ""
    style: str = ""
    premium: bool = False
    online: bool = False
    banned: bool = False
    trade_offer_url: Optional[str] = None
    is_marketplace_seller: bool = False
    flag_impersonated: bool = False
    bans: List[Dict[str, Any]] = field(default_factory=list)

    def access_token(self) -> Optional[str]:
        """Return the trade offer access token embedded in the trade offer URL."""

        if not self.trade_offer_url:
            return None
        query = parse_qs(urlparse(self.trade_offer_url).query)
        tokens = query.get("token")
        if not tokens:
            return None
        token = tokens[0]
        return token if len(token) == 8 else None


@dataclass
class Item:
    """The item attached to a listing."""

    appid: int
    base_name: str
    market_name: str
    name: str
    defindex: int
    image_url: str
    summary: str
    quality: Any
    id: Optional[int] = None
    original_id: Optional[int] = None
    quantity: Optional[int] = None
    craftable: bool = False
    australium: bool = False
    festivized: bool = False
    strange: bool = False
    dupe: bool = False
    class_: List[str] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)


# wire keys kept as-is on Item.attributes
_ITEM_ATTRIBUTE_KEYS = (
    "origin",
    "slot",
    "wearTier",
    "paint",
    "crateSeries",
    "killstreakTier",
    "sheen",
    "killstreaker",
    "particle",
    "texture",
    "killEaters",
    "recipe",
    "strangeParts",
    "spells",
)


@dataclass
class Listing:
    """A classified listing on backpack.tf."""

    id: str
    steamid: str
    appid: int
    currencies: Currencies
    listed_at: datetime
    bumped_at: datetime
    intent: ListingIntent
    item: Item
    count: int
    status: str
    value: Optional[Value] = None
    trade_offers_preferred: bool = False
    buyout_only: bool = False
    details: Optional[str] = None
    user_agent: Optional[UserAgent] = None
    user: Optional[User] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def relistable(self, interval: timedelta) -> bool:
        """Return True when the listing was listed longer ago than ``interval``."""

        cutoff = datetime.now(timezone.utc) - interval
        return self.listed_at < cutoff


def decode_listing(data: Any, appid: int = TRACKED_APPID) -> Listing:
    """Decode a JSON value into a :class:`Listing` for the given application."""

    obj = _as_object(data, "listing")
    listing_appid = _int(obj, "appid")
    if listing_appid != appid:
        raise ListingDecodeError(f"listing belongs to appid {listing_appid}, expected {appid}")

    return Listing(
        id=_str(obj, "id"),
        steamid=_str(obj, "steamid"),
        appid=listing_appid,
        currencies=_decode_currencies(_field(obj, "currencies")),
        value=_optional(obj, "value", _decode_value),
        trade_offers_preferred=_bool(obj, "tradeOffersPreferred"),
        buyout_only=_bool(obj, "buyoutOnly"),
        details=_optional_str(obj, "details"),
        listed_at=_timestamp(obj, "listedAt"),
        bumped_at=_timestamp(obj, "bumpedAt"),
        intent=_intent(obj),
        item=_decode_item(_field(obj, "item")),
        count=_count(obj),
        status=_str(obj, "status"),
        user_agent=_optional(obj, "userAgent", _decode_user_agent),
        user=_optional(obj, "user", _decode_user),
        raw=dict(obj),
    )


def _decode_item(data: Any) -> Item:
    obj = _as_object(data, "item")
    if "quality" not in obj or obj["quality"] is None:
        raise ListingDecodeError("item: missing field `quality`")
    classes = obj.get("class") or []
    if not isinstance(classes, list) or not all(isinstance(c, str) for c in classes):
        raise ListingDecodeError("item: `class` must be a list of strings")

    return Item(
        appid=_int(obj, "appid", "item"),
        base_name=_str(obj, "baseName", "item"),
        market_name=_str(obj, "marketName", "item"),
        name=_str(obj, "name", "item"),
        defindex=_int(obj, "defindex", "item"),
        image_url=_str(obj, "imageUrl", "item"),
        summary=_str(obj, "summary", "item"),
        quality=obj["quality"],
        id=_number_or_string(obj, "id"),
        original_id=_number_or_string(obj, "originalId"),
        quantity=_number_or_string(obj, "quantity"),
        craftable=_bool(obj, "craftable", "item"),
        australium=_bool(obj, "australium", "item"),
        festivized=_bool(obj, "festivized", "item"),
        strange=obj.get("elevatedQuality") is not None,
        dupe=obj.get("dupe") is not None,
        class_=list(classes),
        attributes={key: obj[key] for key in _ITEM_ATTRIBUTE_KEYS if obj.get(key) is not None},
    )


def _decode_currencies(data: Any) -> Currencies:
    obj = _as_object(data, "currencies")
    return Currencies(
        keys=_float(obj, "keys", "currencies", default=0.0),
        metal=_float(obj, "metal", "currencies", default=0.0),
        usd=_float(obj, "usd", "currencies", default=None),
    )


def _decode_value(data: Any) -> Value:
    obj = _as_object(data, "value")
    return Value(
        raw=_float(obj, "raw", "value"),
        short=_str(obj, "short", "value"),
        long=_str(obj, "long", "value"),
    )


def _decode_user_agent(data: Any) -> UserAgent:
    obj = _as_object(data, "userAgent")
    return UserAgent(client=_str(obj, "client", "userAgent"), last_pulse=_timestamp(obj, "lastPulse", "userAgent"))


def _decode_user(data: Any) -> User:
    obj = _as_object(data, "user")
    bans = obj.get("bans") or []
    if isinstance(bans, dict):
        bans = [bans]
    return User(
        id=_str(obj, "id", "user"),
        name=_str(obj, "name", "user"),
        avatar=_str(obj, "avatar", "user"),
        avatar_full=_str(obj, "avatarFull", "user"),
        custom_name_style=_str(obj, "customNameStyle", "user", default=""),
        accepted_suggestions=_int(obj, "acceptedSuggestions", "user", default=0),
        class_=_str(obj, "class", "user", default=""),
        style=_str(obj, "style", "user", default=""),
        premium=_bool(obj, "premium", "user"),
        online=_bool(obj, "online", "user"),
        banned=_bool(obj, "banned", "user"),
        trade_offer_url=_optional_str(obj, "tradeOfferUrl", "user"),
        is_marketplace_seller=_bool(obj, "isMarketplaceSeller", "user"),
        flag_impersonated=_bool(obj, "flagImpersonated", "user"),
        bans=list(bans),
    )


def _as_object(data: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(data, dict):
        raise ListingDecodeError(f"{name}: expected an object, got {type(data).__name__}")
    return data


def _field(obj: Mapping[str, Any], key: str, where: str = "listing", default: Any = _MISSING) -> Any:
    value = obj.get(key)
    if value is None:
        if default is _MISSING:
            raise ListingDecodeError(f"{where}: missing field `{key}`")
        return default
    return value


def _str(obj: Mapping[str, Any], key: str, where: str = "listing", default: Any = _MISSING) -> str:
    value = _field(obj, key, where, default)
    if not isinstance(value, str):
        raise ListingDecodeError(f"{where}: `{key}` must be a string")
    return value


def _optional_str(obj: Mapping[str, Any], key: str, where: str = "listing") -> Optional[str]:
    value = obj.get(key)
    if value is not None and not isinstance(value, str):
        raise ListingDecodeError(f"{where}: `{key}` must be a string")
    return value


def _int(obj: Mapping[str, Any], key: str, where: str = "listing", default: Any = _MISSING) -> int:
    value = _field(obj, key, where, default)
    # bool is an int subclass but never a valid count or id
    if isinstance(value, bool) or not isinstance(value, int):
        raise ListingDecodeError(f"{where}: `{key}` must be an integer")
    return value


def _float(obj: Mapping[str, Any], key: str, where: str = "listing", default: Any = _MISSING) -> Any:
    value = _field(obj, key, where, default)
    if value is default and default is not _MISSING:
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ListingDecodeError(f"{where}: `{key}` must be a number")
    try:
        number = float(value)
    except OverflowError:
        raise ListingDecodeError(f"{where}: `{key}` is out of range") from None
    if not math.isfinite(number):
        raise ListingDecodeError(f"{where}: `{key}` must be a finite number")
    return number


def _bool(obj: Mapping[str, Any], key: str, where: str = "listing") -> bool:
    value = obj.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ListingDecodeError(f"{where}: `{key}` must be a boolean")
    return value


def _number_or_string(obj: Mapping[str, Any], key: str) -> Optional[int]:
    value = obj.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ListingDecodeError(f"item: `{key}` must be a number or numeric string")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ListingDecodeError(f"item: `{key}` is not numeric: {value!r}") from None
    raise ListingDecodeError(f"item: `{key}` must be a number or numeric string")


def _timestamp(obj: Mapping[str, Any], key: str, where: str = "listing") -> datetime:
    value = _field(obj, key, where)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ListingDecodeError(f"{where}: `{key}` must be a unix timestamp")
    if isinstance(value, float) and not math.isfinite(value):
        raise ListingDecodeError(f"{where}: `{key}` must be a finite unix timestamp")
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        raise ListingDecodeError(f"{where}: `{key}` is out of range: {value!r}") from None


def _count(obj: Mapping[str, Any]) -> int:
    value = _int(obj, "count")
    if not 0 <= value <= _MAX_COUNT:
        raise ListingDecodeError(f"listing: `count` out of range: {value}")
    return value


def _intent(obj: Mapping[str, Any]) -> ListingIntent:
    value = _field(obj, "intent")
    try:
        return ListingIntent(value)
    except ValueError:
        raise ListingDecodeError(f"listing: invalid intent {value!r}") from None


def _optional(obj: Mapping[str, Any], key: str, decoder):
    value = obj.get(key)
    if value is None:
        return None
    return decoder(value)


__all__ = [
    "APPID_TEAM_FORTRESS_2",
    "TRACKED_APPID",
    "Currencies",
    "Item",
    "Listing",
    "ListingDecodeError",
    "ListingIntent",
    "User",
    "UserAgent",
    "Value",
    "decode_listing",
]
