"""
YOLOv3 detection post-processing.

Turns raw detector rows into de-duplicated, labeled boxes: decode -> per-class NMS
-> ordered detections. Core needs NumPy only; OpenCV is used by the pipeline to
prepare the network input blob.
"""

from .types import BoundingBox, Candidate, ClassCatalog, Detection
from .errors import ClassCatalogMismatch, InvalidThreshold, MalformedTensor, PostprocessError
from .config import YoloV3PostConfig, load_post_config
from .decode import decode_tensors, expected_row_width
from .nms import iou, nms, suppress_all, suppress_class
from .aggregate import aggregate
from .postprocess import YoloV3Postprocessor
from .runtime import BlobConfig, YoloV3Pipeline
from .metadata import load_class_names

__all__ = [
    "BoundingBox",
    "Candidate",
    "ClassCatalog",
    "Detection",
    "ClassCatalogMismatch",
    "InvalidThreshold",
    "MalformedTensor",
    "PostprocessError",
    "YoloV3PostConfig",
    "load_post_config",
    "decode_tensors",
    "expected_row_width",
    "iou",
    "nms",
    "suppress_all",
    "suppress_class",
    "aggregate",
    "YoloV3Postprocessor",
    "BlobConfig",
    "YoloV3Pipeline",
    "load_class_names",
]
