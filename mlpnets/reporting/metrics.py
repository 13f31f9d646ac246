"""Epoch listeners persisting training-loss curves."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Mapping


class JsonlSink:
    """Append-only JSONL writer, one record per epoch."""

    def __init__(self, path: str | Path, *, run: str | None = None, seed: int | None = None) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.run = run
        self.seed = seed

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record: dict = {"epoch": int(epoch)}
        if self.run is not None:
            record["run"] = self.run
        if self.seed is not None:
            record["seed"] = self.seed
        record.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    def records(self) -> list:
        return [json.loads(line) for line in self.path.read_text().splitlines() if line.strip()]


class CsvSink:
    """Write epoch metrics to CSV with a stable, sorted column order."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row = {"epoch": int(epoch)}
        row.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=sorted(row.keys()))
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)


class LossHistory:
    """Keep ``(epoch, loss)`` pairs in memory."""

    def __init__(self) -> None:
        self.history: list[tuple[int, float]] = []

    def __call__(self, epoch: int, loss: float) -> None:
        self.history.append((int(epoch), float(loss)))

    @property
    def losses(self) -> list[float]:
        return [loss for _, loss in self.history]
