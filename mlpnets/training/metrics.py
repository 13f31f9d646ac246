"""Evaluation helpers for classifiers."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from ..classifier import Classifier
from ..core.types import Array, Label

ProgressFn = Callable[[int], None]


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def count_correct(
    classifier: Classifier,
    inputs: Iterable[Array],
    labels: Iterable[Label],
    progress: Optional[ProgressFn] = None,
) -> int:
    """Count sequential predictions matching ``labels``.

    ``progress`` receives the number of rows tested so far after each row.
    """

    label_iter = iter(labels)
    tested = 0
    correct = 0
    for row in inputs:
        try:
            expected = next(label_iter)
        except StopIteration as exc:
            raise ValueError("more input rows than labels") from exc
        predicted = classifier.predict(row)
        tested += 1
        if progress is not None:
            progress(tested)
        if predicted == expected:
            correct += 1
    return correct


def count_correct_parallel(
    classifier: Classifier,
    pairs: Iterable[Tuple[Array, Label]],
    *,
    max_workers: Optional[int] = None,
    progress: Optional[ProgressFn] = None,
) -> int:
    """Like :func:`count_correct` but predicting from a thread pool.

    ``progress`` may be invoked concurrently and out of order.
    """

    lock = threading.Lock()
    tested = 0

    def _check(pair: Tuple[Array, Label]) -> bool:
        nonlocal tested
        row, expected = pair
        hit = classifier.predict(row) == expected
        if progress is not None:
            with lock:
                tested += 1
                count = tested
            progress(count)
        return hit

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return sum(1 for hit in pool.map(_check, pairs) if hit)


def accuracy(
    classifier: Classifier,
    inputs: Iterable[Array],
    labels: Iterable[Label],
) -> MetricResult:
    rows = list(inputs)
    targets = list(labels)
    if len(rows) != len(targets):
        raise ValueError(f"got {len(rows)} input rows but {len(targets)} labels")
    if not rows:
        return MetricResult(name="accuracy", value=0.0)
    correct = count_correct(classifier, rows, targets)
    return MetricResult(name="accuracy", value=correct / len(rows))


__all__ = ["MetricResult", "count_correct", "count_correct_parallel", "accuracy"]
