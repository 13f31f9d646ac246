"""mlpnets public API."""

from .classifier import Classifier
from .core import activations, initializers  # noqa: F401
from .core.activations import ActivationFunction
from .core.errors import (
    AlreadyTrained,
    InvalidTopology,
    MLPNetsError,
    NoTrainingData,
    NotTrained,
    ShapeMismatch,
)
from .core.layer import Layer
from .core.network import Network
from .core.types import TrainingResult
from .training import losses  # noqa: F401
from .training.config import SessionConfig, load_config, load_preset, presets
from .training.losses import Loss
from .training.session import MLPClassifier, PerceptronClassifier, TrainingSession

__version__ = "0.1.0"

__all__ = [
    "ActivationFunction",
    "AlreadyTrained",
    "Classifier",
    "InvalidTopology",
    "Layer",
    "Loss",
    "MLPClassifier",
    "MLPNetsError",
    "Network",
    "NoTrainingData",
    "NotTrained",
    "PerceptronClassifier",
    "SessionConfig",
    "ShapeMismatch",
    "TrainingResult",
    "TrainingSession",
    "activations",
    "initializers",
    "load_config",
    "load_preset",
    "losses",
    "presets",
]
