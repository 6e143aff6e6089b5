"""Metrics utilities for exposing Prometheus-formatted data."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Dict


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class Gauge:
    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description
        self._value = 0.0

    def set(self, value: float) -> None:
        self._value = value

    @property
    def value(self) -> float:
        return self._value

    def render(self) -> str:
        return (
            f"# HELP {self.name} {self.description}\n"
            f"# TYPE {self.name} gauge\n"
            f"{self.name} {_format_value(self.value)}\n"
        )


class MetricsRegistry:
    def __init__(self) -> None:
        self._metrics: Dict[str, Gauge] = {}

    def register(self, metric: Gauge) -> Gauge:
        if metric.name in self._metrics:
            raise ValueError(f"Metric already registered: {metric.name}")
        self._metrics[metric.name] = metric
        return metric

    def gauge(self, name: str, description: str, value: float) -> Gauge:
        gauge = Gauge(name, description)
        gauge.set(value)
        return self.register(gauge)

    def names(self) -> list[str]:
        return list(self._metrics)

    def render(self) -> str:
        return "".join(metric.render() for metric in self._metrics.values())


def write_textfile(path: Path, content: str) -> None:
    """Atomically replace ``path`` so collectors never scrape a partial file."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
