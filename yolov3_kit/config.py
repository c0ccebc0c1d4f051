from __future__ import annotations

import json
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import numpy as np

from .errors import InvalidThreshold


def _check_threshold(name: str, value: object) -> None:
    # NumPy scalars (np.float32 etc.) register as numbers.Real.
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise InvalidThreshold(f"{name} must be a number, got {value!r}")
    if not 0.0 <= float(value) <= 1.0:
        raise InvalidThreshold(f"{name} must be within [0, 1], got {value!r}")


@dataclass(frozen=True)
class YoloV3PostConfig:
    """
    Thresholds and layout options for YOLOv3 post-processing.
    """

    confidence_threshold: float = 0.5
    nms_threshold: float = 0.4
    # Darknet exports carry an objectness column before the class scores:
    # (N, 5 + C). It is skipped, class scores are used as-is.
    has_objectness: bool = False
    # Optional cap on survivors per class; None keeps all.
    top_k: Optional[int] = None
    # > 1 fans per-class suppression out to a thread pool.
    max_workers: int = 1

    def __post_init__(self) -> None:
        _check_threshold("confidence_threshold", self.confidence_threshold)
        _check_threshold("nms_threshold", self.nms_threshold)
        object.__setattr__(self, "confidence_threshold", float(self.confidence_threshold))
        object.__setattr__(self, "nms_threshold", float(self.nms_threshold))
        if self.top_k is not None:
            if isinstance(self.top_k, bool) or not isinstance(self.top_k, int) or self.top_k < 1:
                raise ValueError("top_k must be None or an integer >= 1")
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ValueError("max_workers must be an integer >= 1")

    @classmethod
    def from_param_map(cls, params: Mapping[str, str], **overrides: Any) -> "YoloV3PostConfig":
        """
        Build a config from a host string map: {"confidence": "0.5", "nmsThreshold": "0.4"}.
        """

        values: Dict[str, Any] = {}
        for key, field in (("confidence", "confidence_threshold"), ("nmsThreshold", "nms_threshold")):
            if key not in params:
                raise ValueError(f"Missing required parameter: {key}")
            try:
                values[field] = float(params[key])
            except (TypeError, ValueError) as exc:
                raise InvalidThreshold(f"{key} must be a number, got {params[key]!r}") from exc
        values.update(overrides)
        return cls(**values)

    def to_param_map(self) -> Dict[str, str]:
        return {
            "confidence": f"{self.confidence_threshold:.6f}",
            "nmsThreshold": f"{self.nms_threshold:.6f}",
        }


def load_post_config(path: Path) -> YoloV3PostConfig:
    if not path.exists():
        raise FileNotFoundError(f"Post-process config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid post-process config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Post-process config must be a JSON object")

    allowed = {
        "confidence_threshold",
        "nms_threshold",
        "has_objectness",
        "top_k",
        "max_workers",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown post-process config keys: {unknown}")

    has_objectness = payload.get("has_objectness", False)
    if not isinstance(has_objectness, bool):
        raise ValueError("has_objectness must be a boolean")

    # Thresholds and counts are validated by the dataclass itself.
    return YoloV3PostConfig(
        confidence_threshold=payload.get("confidence_threshold", 0.5),
        nms_threshold=payload.get("nms_threshold", 0.4),
        has_objectness=has_objectness,
        top_k=payload.get("top_k"),
        max_workers=payload.get("max_workers", 1),
    )
