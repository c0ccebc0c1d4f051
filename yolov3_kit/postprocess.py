from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterator, List, Optional, Tuple

from .aggregate import aggregate
from .config import YoloV3PostConfig
from .decode import TensorInput, decode_tensors
from .errors import ClassCatalogMismatch
from .nms import suppress_all
from .types import Candidate, ClassCatalog, Detection


LOGGER = logging.getLogger(__name__)


class YoloV3Postprocessor:
    """
    YOLOv3 post-process: raw rows -> per-class candidates -> per-class NMS -> detections.

    Layout per row (one or more output tensors per image):
    - (N, 4 + C): [cx, cy, w, h, class_scores...]
    - (N, 5 + C): [cx, cy, w, h, obj, class_scores...] with `has_objectness=True`

    Box fields are normalized to [0, 1]; detections come back in source image pixels.
    Config and catalog are read-only, one instance can serve concurrent callers.
    """

    def __init__(
        self,
        cfg: YoloV3PostConfig,
        catalog: ClassCatalog,
        num_classes: Optional[int] = None,
    ):
        if len(catalog) == 0:
            raise ClassCatalogMismatch("Class catalog is empty")
        if num_classes is not None and num_classes != len(catalog):
            raise ClassCatalogMismatch(
                f"Model has {num_classes} classes but the catalog lists {len(catalog)}"
            )
        self.cfg = cfg
        self.catalog = catalog

    def process(
        self,
        tensors: TensorInput,
        image_size: Tuple[int, int],
        ids: Optional[Iterator[int]] = None,
    ) -> List[Detection]:
        """
        Args:
            tensors: raw model output(s) for a single image
            image_size: (width, height) of the source image
            ids: optional id sequence shared across calls; ids restart at 0 otherwise
        """

        candidates = decode_tensors(tensors, image_size, self.cfg, self.catalog)
        survivors = self._suppress(candidates)
        detections = aggregate(survivors, self.catalog, ids=ids)

        LOGGER.debug(
            "candidates=%d detections=%d classes=%d",
            sum(len(v) for v in candidates.values()),
            len(detections),
            len(self.catalog),
        )
        return detections

    # ------------------------------------------------------------------ #
    # Helper internal
    # ------------------------------------------------------------------ #
    def _suppress(self, candidates: Dict[int, List[Candidate]]) -> Dict[int, List[Candidate]]:
        busy = {cls: c for cls, c in candidates.items() if c}
        if self.cfg.max_workers <= 1 or len(busy) <= 1:
            return suppress_all(candidates, self.cfg)

        with ThreadPoolExecutor(max_workers=min(self.cfg.max_workers, len(busy))) as pool:
            survivors = suppress_all(busy, self.cfg, executor=pool)
        for cls in candidates:
            survivors.setdefault(cls, [])
        return survivors
