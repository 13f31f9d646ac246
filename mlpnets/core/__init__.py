"""Core numerical primitives for mlpnets."""

from . import activations, errors, initializers, layer, network, types

__all__ = ["activations", "errors", "initializers", "layer", "network", "types"]
