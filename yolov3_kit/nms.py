from __future__ import annotations

from concurrent.futures import Executor
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .config import YoloV3PostConfig
from .types import BoundingBox, Candidate


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Intersection-over-Union of two xywh boxes. Degenerate boxes overlap nothing.
    """

    ax1, ay1, ax2, ay2 = a.as_xyxy()
    bx1, by1, bx2, by2 = b.as_xyxy()
    inter_w = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    inter_h = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = inter_w * inter_h
    if inter <= 0.0:
        return 0.0
    union = a.area + b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: YoloV3PostConfig) -> np.ndarray:
    """
    Greedy NumPy NMS for a single class. Expects boxes shape (N,4) in xywh and scores shape (N,).
    Returns indices of kept boxes, highest score first; equal scores keep input order.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)

    candidates = np.where(scores > cfg.confidence_threshold)[0]
    if candidates.size == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    w = boxes[:, 2]
    h = boxes[:, 3]
    x2 = x1 + w
    y2 = y1 + h
    areas = np.maximum(0.0, w) * np.maximum(0.0, h)

    order = candidates[np.argsort(-scores[candidates], kind="stable")]
    keep: List[int] = []

    while order.size > 0:
        if cfg.top_k is not None and len(keep) >= cfg.top_k:
            break
        i = order[0]
        keep.append(int(i))

        rest = order[1:]
        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
        union = areas[i] + areas[rest] - inter
        overlap = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0.0)

        order = rest[overlap <= cfg.nms_threshold]

    return np.array(keep, dtype=np.int64)


def suppress_class(candidates: Sequence[Candidate], cfg: YoloV3PostConfig) -> List[Candidate]:
    if not candidates:
        return []
    boxes = np.array([c.box.as_xywh() for c in candidates], dtype=np.float64)
    scores = np.array([c.score for c in candidates], dtype=np.float64)
    return [candidates[i] for i in nms(boxes, scores, cfg).tolist()]


def suppress_all(
    per_class: Mapping[int, Sequence[Candidate]],
    cfg: YoloV3PostConfig,
    executor: Optional[Executor] = None,
) -> Dict[int, List[Candidate]]:
    """
    Run `suppress_class` for every class; classes never suppress each other.

    With an executor the classes are suppressed concurrently. The result is keyed
    by class id in ascending order either way.
    """

    class_ids = sorted(per_class)
    if executor is None:
        return {cls: suppress_class(per_class[cls], cfg) for cls in class_ids}

    futures = {cls: executor.submit(suppress_class, per_class[cls], cfg) for cls in class_ids}
    return {cls: futures[cls].result() for cls in class_ids}
