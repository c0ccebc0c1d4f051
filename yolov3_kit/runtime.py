from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import YoloV3PostConfig
from .postprocess import YoloV3Postprocessor
from .types import ClassCatalog, Detection


InferFn = Callable[[np.ndarray], Union[np.ndarray, Sequence[np.ndarray]]]


@dataclass(frozen=True)
class BlobConfig:
    """
    Network input preparation. Darknet YOLOv3 takes a square RGB input scaled to [0, 1].
    """

    input_size: int = 416
    scale_factor: float = 1.0 / 255.0
    mean: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    swap_rb: bool = False
    crop: bool = False

    def __post_init__(self) -> None:
        if self.input_size < 32:
            raise ValueError("input_size must be >= 32")
        if self.scale_factor <= 0:
            raise ValueError("scale_factor must be > 0")


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]


def _as_color(image: np.ndarray) -> np.ndarray:
    import cv2  # type: ignore

    if image.ndim == 2 or image.shape[2] == 1:
        # Detection networks need a 3-channel image as input
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.shape[2] == 3:
        return image
    raise ValueError(f"Unsupported channel count: {image.shape}")


class YoloV3Pipeline:
    """
    Plug-and-play pipeline: preprocess (blob) -> inference -> postprocess.

    Inference is injected as `infer_fn(blob)`, returning the raw output tensor(s) for
    one image. Returns a list of `Detection` in original image coordinates.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        catalog: ClassCatalog,
        *,
        post_cfg: YoloV3PostConfig = YoloV3PostConfig(),
        blob_cfg: BlobConfig = BlobConfig(),
        num_classes: Optional[int] = None,
    ):
        self._infer_fn = infer_fn
        self.blob_cfg = blob_cfg
        self.post = YoloV3Postprocessor(post_cfg, catalog, num_classes=num_classes)

    def preprocess(self, image: np.ndarray) -> PreprocessResult:
        try:
            import cv2  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("OpenCV is required for preprocess(). Install with `pip install opencv-python`.") from e

        if image is None or not hasattr(image, "shape"):
            raise TypeError("image must be a NumPy array.")
        if image.ndim not in (2, 3) or image.size == 0:
            raise ValueError(f"Expected image shape (H, W) or (H, W, C), got {getattr(image, 'shape', None)}")

        orig_h, orig_w = image.shape[:2]
        cfg = self.blob_cfg
        blob = cv2.dnn.blobFromImage(
            _as_color(image),
            cfg.scale_factor,
            (cfg.input_size, cfg.input_size),
            cfg.mean,
            cfg.swap_rb,
            cfg.crop,
        )
        return PreprocessResult(blob=blob, orig_size=(orig_w, orig_h))

    def infer(self, blob: np.ndarray) -> List[np.ndarray]:
        outputs = self._infer_fn(blob)
        if isinstance(outputs, np.ndarray):
            return [outputs]
        return list(outputs)

    def __call__(self, image: np.ndarray) -> List[Detection]:
        prep = self.preprocess(image)
        outputs = self.infer(prep.blob)
        return self.post.process(outputs, image_size=prep.orig_size)
