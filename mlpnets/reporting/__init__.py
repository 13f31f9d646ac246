"""Reporting utilities for mlpnets."""

from .metrics import CsvSink, JsonlSink, LossHistory
from .plots import PlotAdapter

__all__ = ["CsvSink", "JsonlSink", "LossHistory", "PlotAdapter"]
