"""Counters and gauges for the event feed reader."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

MetricsCallback = Callable[[str, Dict[str, float]], None]


@dataclass
class MetricsSink:
    """Collects feed counters and gauges, optionally mirrored to a Prometheus textfile.

    Pass :meth:`observe` as the reader's ``metrics_callback``; every observed
    name becomes a ``<prefix><name>_total`` counter and each numeric value a
    ``<prefix><name>_<key>`` gauge.
    """

    prefix: str = "backpacktf_events_"
    counters: Dict[str, int] = field(default_factory=dict)
    gauges: Dict[str, float] = field(default_factory=dict)
    metrics_file: Path = Path("var/metrics.prom")
    emit_textfile: bool = False
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("backpacktf.metrics"))
    _lock: threading.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self.metrics_file = Path(self.metrics_file)

    def observe(self, name: str, values: Mapping[str, Any]) -> None:
        """Count one occurrence of ``name`` and record its numeric values."""

        with self._lock:
            counter_name = f"{self.prefix}{name}_total"
            self.counters[counter_name] = self.counters.get(counter_name, 0) + 1
            for key, value in values.items():
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    self.gauges[f"{self.prefix}{name}_{key}"] = float(value)
            self._persist_unlocked()
        self.logger.debug(name, extra={"event": "metric", "metric": name, **dict(values)})

    def callback(self) -> MetricsCallback:
        return self.observe

    def count(self, name: str) -> int:
        """Return the number of observations recorded for ``name``."""

        with self._lock:
            return self.counters.get(f"{self.prefix}{name}_total", 0)

    def export(self) -> Dict[str, float | int]:
        with self._lock:
            snapshot = {**self.counters, **self.gauges}
        return snapshot

    def _persist_unlocked(self) -> None:
        if not self.emit_textfile:
            return
        try:
            self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.metrics_file.with_suffix(".tmp")
            temp_path.write_text(self._render_prom_text(), encoding="utf-8")
            os.replace(temp_path, self.metrics_file)
        except OSError as exc:
            self.logger.warning("Failed to write metrics textfile %s: %s", self.metrics_file, exc)

    def _render_prom_text(self) -> str:
        lines = []
        for name, value in sorted(self.counters.items()):
            lines.append(f"# TYPE {name} counter")
            lines.append(f"{name} {int(value)}")
        for name, value in sorted(self.gauges.items()):
            lines.append(f"# TYPE {name} gauge")
            lines.append(f"{name} {float(value)}")
        return "\n".join(lines) + "\n"


__all__ = ["MetricsCallback", "MetricsSink"]
