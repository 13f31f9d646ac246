"""Training sessions, losses and evaluation helpers."""

from .clones import CloneCache
from .session import MLPClassifier, PerceptronClassifier, TrainingSession

__all__ = ["CloneCache", "MLPClassifier", "PerceptronClassifier", "TrainingSession"]
