"""Runner that streams the backpack.tf event feed and serves the dashboard."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

import uvicorn

from backpacktf.dashboard.app import FeedState, create_dashboard_app
from backpacktf.data.websocket import connect
from backpacktf.infra.config import AppConfig, load_config
from backpacktf.infra.logging import configure_logging
from backpacktf.infra.metrics import MetricsSink


async def consume(cfg: AppConfig, state: FeedState, metrics: MetricsSink, stop_event: asyncio.Event) -> None:
    """Read the feed until it ends or ``stop_event`` is set."""

    logger = logging.getLogger("backpacktf.app")
    receiver = await connect(
        cfg.feed.websocket_url,
        tracked_appid=cfg.feed.tracked_appid,
        capacity=cfg.feed.channel_capacity,
        headers=cfg.feed.headers,
        user_agent=cfg.feed.user_agent,
        metrics_callback=metrics.callback(),
    )
    state.mark_connected()
    async with receiver:
        async for event_id, message in receiver:
            summary = state.record(event_id, message)
            logger.info("%s: %s", event_id, message.kind, extra={"event": "feed_message", "summary": summary})
            if stop_event.is_set():
                break
    state.mark_closed()
    logger.info("Event feed ended", extra={"event": "feed_ended"})


async def serve_dashboard(cfg: AppConfig, state: FeedState, metrics: MetricsSink) -> None:
    if not cfg.dashboard.enable:
        return
    app = create_dashboard_app(state, metrics)
    config = uvicorn.Config(app, host=cfg.dashboard.host, port=cfg.dashboard.port, log_level="info")
    server = uvicorn.Server(config)
    await server.serve()


async def run(config_path: Optional[str | Path] = None) -> None:
    cfg = load_config(config_path)
    configure_logging(cfg.logging.level, cfg.logging.format)
    state = FeedState(max_events=cfg.dashboard.recent_events)
    metrics = MetricsSink(metrics_file=Path(cfg.metrics.metrics_file), emit_textfile=cfg.metrics.emit_textfile)

    stop_event = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            asyncio.get_running_loop().add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows/limited environments
            pass

    feed = asyncio.create_task(consume(cfg, state, metrics, stop_event))
    dashboard = asyncio.create_task(serve_dashboard(cfg, state, metrics))
    stopper = asyncio.create_task(stop_event.wait())

    await asyncio.wait({feed, stopper}, return_when=asyncio.FIRST_COMPLETED)
    for task in (feed, dashboard, stopper):
        task.cancel()
    results = await asyncio.gather(feed, dashboard, stopper, return_exceptions=True)
    if isinstance(results[0], Exception):
        raise results[0]


def main() -> None:
    parser = argparse.ArgumentParser(description="backpack.tf event feed reader")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    args = parser.parse_args()
    asyncio.run(run(args.config))


if __name__ == "__main__":
    main()
