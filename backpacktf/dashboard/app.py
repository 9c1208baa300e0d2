"""FastAPI dashboard showing recent feed events and per-kind counts."""

from __future__ import annotations

from collections import Counter, deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

from fastapi import FastAPI

from backpacktf.data.messages import (
    ClientLimitExceeded,
    ListingDelete,
    ListingDeleteOtherApp,
    ListingUpdate,
    ListingUpdateOtherApp,
    Message,
)
from backpacktf.infra.metrics import MetricsSink


def summarize(event_id: str, message: Message) -> Dict[str, Any]:
    """Return a JSON-friendly summary of one feed message."""

    summary: Dict[str, Any] = {"id": event_id, "kind": message.kind}
    if isinstance(message, (ListingUpdate, ListingDelete)):
        listing = message.listing
        summary.update(
            appid=listing.appid,
            listing_id=listing.id,
            steamid=listing.steamid,
            intent=listing.intent.value,
            item=listing.item.name,
        )
    elif isinstance(message, (ListingUpdateOtherApp, ListingDeleteOtherApp)):
        summary["appid"] = message.appid
    elif isinstance(message, ClientLimitExceeded):
        summary["message"] = message.message
    return summary


class FeedState:
    """Recent events and counters shared between the consumer and the dashboard."""

    def __init__(self, max_events: int = 200) -> None:
        self.events: Deque[Dict[str, Any]] = deque(maxlen=max_events)
        self.counts: Counter = Counter()
        self.status = "initializing"
        self.connected_at: Optional[datetime] = None
        self.last_event_at: Optional[datetime] = None

    def mark_connected(self) -> None:
        self.status = "connected"
        self.connected_at = datetime.now(timezone.utc)

    def mark_closed(self) -> None:
        self.status = "closed"

    def record(self, event_id: str, message: Message) -> Dict[str, Any]:
        summary = summarize(event_id, message)
        self.events.append(summary)
        self.counts[message.kind] += 1
        self.last_event_at = datetime.now(timezone.utc)
        return summary

    def recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        return list(self.events)[-limit:]


def create_dashboard_app(state: FeedState, metrics: Optional[MetricsSink] = None) -> FastAPI:
    app = FastAPI(title="backpack.tf Event Feed", version="0.1.0")

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": state.status,
            "connected_at": state.connected_at.isoformat() if state.connected_at else None,
            "last_event_at": state.last_event_at.isoformat() if state.last_event_at else None,
        }

    @app.get("/events")
    async def events(limit: int = 50) -> List[Dict[str, Any]]:
        return state.recent(limit)

    @app.get("/stats")
    async def stats() -> Dict[str, Any]:
        return {"counts": dict(state.counts), "metrics": metrics.export() if metrics else {}}

    return app


__all__ = ["FeedState", "create_dashboard_app", "summarize"]
