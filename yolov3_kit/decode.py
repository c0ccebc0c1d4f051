from __future__ import annotations

from typing import Dict, List, Sequence, Tuple, Union

import numpy as np

from .config import YoloV3PostConfig
from .errors import MalformedTensor
from .types import BoundingBox, Candidate, ClassCatalog


TensorInput = Union[np.ndarray, Sequence[np.ndarray]]


def expected_row_width(nb_classes: int, has_objectness: bool = False) -> int:
    return score_offset(has_objectness) + nb_classes


def score_offset(has_objectness: bool = False) -> int:
    # [cx, cy, w, h, (obj,) class_scores...]
    return 5 if has_objectness else 4


def _as_tensor_list(tensors: TensorInput) -> List[np.ndarray]:
    if isinstance(tensors, np.ndarray):
        return [tensors]
    items = list(tensors)
    if items and not isinstance(items[0], np.ndarray) and np.ndim(items[0]) == 1:
        # One tensor given as nested row lists: [[cx, cy, w, h, ...], ...]
        return [np.asarray(items)]
    return [np.asarray(t) for t in items]


def _check_tensor(t: np.ndarray, width: int) -> np.ndarray:
    p = np.asarray(t, dtype=np.float64)
    if p.ndim == 3:
        if p.shape[0] != 1:
            raise MalformedTensor(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
        p = p[0]
    if p.ndim != 2:
        raise MalformedTensor(f"Expected a 2-D (rows, {width}) tensor, got shape {p.shape}")
    if p.shape[1] != width:
        raise MalformedTensor(f"Expected row width {width}, got {p.shape[1]} (shape {p.shape})")
    return p


def decode_tensors(
    tensors: TensorInput,
    image_size: Tuple[int, int],
    cfg: YoloV3PostConfig,
    catalog: ClassCatalog,
) -> Dict[int, List[Candidate]]:
    """
    Turn raw YOLOv3 rows into per-class candidates in source image pixels.

    Args:
        tensors: one (rows, width) array or a list of them (one per output layer)
        image_size: (width, height) of the source image
        cfg: thresholds and row layout
        catalog: class names, one per score column

    Returns:
        {class_id: [Candidate, ...]} with a key for every class; each list keeps row order.
        A row scoring above the threshold for several classes yields one candidate per class.
    """

    nb_classes = len(catalog)
    width = expected_row_width(nb_classes, cfg.has_objectness)
    offset = score_offset(cfg.has_objectness)

    # Validate everything first: a bad tensor must not leave partial candidates behind.
    checked = [_check_tensor(t, width) for t in _as_tensor_list(tensors)]

    img_w, img_h = image_size
    per_class: Dict[int, List[Candidate]] = {j: [] for j in range(nb_classes)}

    for p in checked:
        if p.shape[0] == 0:
            continue

        # Convert normalized cxcywh -> absolute xywh (top-left)
        w_box = p[:, 2] * img_w
        h_box = p[:, 3] * img_h
        left = p[:, 0] * img_w - w_box / 2
        top = p[:, 1] * img_h - h_box / 2

        class_scores = p[:, offset:]
        rows, cols = np.nonzero(class_scores > cfg.confidence_threshold)
        # np.nonzero walks row-major; sorting by column keeps row order inside each class.
        order = np.argsort(cols, kind="stable")
        for i, j in zip(rows[order].tolist(), cols[order].tolist()):
            per_class[j].append(
                Candidate(
                    class_id=j,
                    score=float(class_scores[i, j]),
                    box=BoundingBox(float(left[i]), float(top[i]), float(w_box[i]), float(h_box[i])),
                )
            )

    return per_class
