"""Session configuration, presets and JSON/YAML config files."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Dict, List, Mapping

from ..core import initializers
from .session import DEFAULT_MAX_EPOCHS, MLPClassifier

_PRESETS: Dict[str, Mapping[str, object]] = {
    "perceptron-identity-mse": {
        "row_length": 2,
        "hidden": [],
        "learning_rate": 0.1,
        "max_epochs": 1,
        "max_delta_threshold": -1.0,
        "hidden_activation": "identity",
        "output_activation": "identity",
        "loss": "mse",
        "init": {"kind": "constant", "value": 0.0},
    },
    "xor-tanh": {
        "row_length": 2,
        "hidden": [4],
        "learning_rate": 0.2,
        "max_epochs": 2000,
        "max_delta_threshold": 1e-6,
        "hidden_activation": "tanh",
        "output_activation": "sigmoid",
        "loss": "sse",
        "init": {"kind": "gaussian", "seed": 3, "scale": 0.5},
    },
    "mlp-default": {
        "row_length": 4,
        "hidden": [100],
        "learning_rate": 0.01,
        "max_epochs": 200,
        "max_delta_threshold": 1e-4,
        "hidden_activation": "sigmoid",
        "output_activation": "sigmoid",
        "loss": "softmax_log",
        "init": {"kind": "gaussian", "seed": 0, "scale": 1.0},
    },
}


@dataclass
class SessionConfig:
    """Hyperparameters of an :class:`MLPClassifier`, in serialisable form."""

    row_length: int
    hidden: List[int] = field(default_factory=lambda: [100])
    learning_rate: float = 0.1
    max_epochs: int = DEFAULT_MAX_EPOCHS
    max_delta_threshold: float = 0.0
    hidden_activation: str = "sigmoid"
    output_activation: str = "sigmoid"
    loss: str = "softmax_log"
    init: Dict[str, object] = field(default_factory=lambda: {"kind": "gaussian"})
    cache_clones: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "SessionConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise KeyError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        if "row_length" not in data:
            raise KeyError("config is missing required key 'row_length'")
        payload = deepcopy(dict(data))
        if "hidden" in payload:
            # numeric strings from config files become ints; other values are checked by build()
            payload["hidden"] = [
                int(h) if isinstance(h, str) else h for h in payload["hidden"]  # type: ignore[union-attr]
            ]
        return cls(**payload)  # type: ignore[arg-type]

    def to_mapping(self) -> Dict[str, object]:
        return json.loads(json.dumps(asdict(self)))

    def build(self) -> MLPClassifier:
        init_cfg = dict(self.init)
        kind = str(init_cfg.pop("kind", "gaussian"))
        return MLPClassifier(
            self.row_length,
            self.hidden,
            learning_rate=float(self.learning_rate),
            max_epochs=int(self.max_epochs),
            max_delta_threshold=float(self.max_delta_threshold),
            hidden_activation=self.hidden_activation,
            output_activation=self.output_activation,
            loss=self.loss,
            weight_init=initializers.build(kind, **init_cfg),
            cache_clones=bool(self.cache_clones),
        )


def _read_config_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load config files in YAML format") from exc
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def load_config(path: str | Path) -> SessionConfig:
    """Read a :class:`SessionConfig` from a JSON or YAML file."""

    return SessionConfig.from_mapping(_read_config_file(Path(path)))


def presets() -> Mapping[str, Mapping[str, object]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str, **overrides: object) -> SessionConfig:
    try:
        data = dict(deepcopy(_PRESETS[name]))
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc
    data.update(overrides)
    return SessionConfig.from_mapping(data)


__all__ = ["SessionConfig", "load_config", "load_preset", "presets"]
