from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List

import numpy as np

from yolov3_kit import YoloV3PostConfig, YoloV3Postprocessor, load_class_names, load_post_config


def _load_tensors(path: Path) -> List[np.ndarray]:
    if not path.exists():
        raise FileNotFoundError(f"Tensor file not found: {path}")
    if path.suffix.lower() == ".npz":
        with np.load(path) as archive:
            # Keep the archive order: one entry per output layer.
            return [archive[name] for name in archive.files]
    if path.suffix.lower() == ".npy":
        return [np.load(path)]
    raise ValueError(f"--tensors must be a .npy or .npz file, got {path.suffix!r}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Decode raw YOLOv3 output rows into labeled detections (per-class NMS)."
    )
    parser.add_argument("--tensors", required=True, help="Raw output rows (.npy, or .npz with one array per layer).")
    parser.add_argument("--names", required=True, help="Labels file (one name per line) or metadata.yaml.")
    parser.add_argument("--image-size", type=int, nargs=2, required=True, metavar=("W", "H"), help="Source image size.")
    parser.add_argument("--config", default=None, help="Optional JSON post-process config (overrides --conf/--nms).")
    parser.add_argument("--conf", type=float, default=0.5, help="Confidence threshold.")
    parser.add_argument("--nms", type=float, default=0.4, help="IoU threshold for NMS.")
    parser.add_argument("--objectness", action="store_true", help="Rows carry an objectness column: (N, 5 + C).")
    parser.add_argument("--workers", type=int, default=1, help="Threads for per-class NMS (1 = sequential).")
    parser.add_argument("--json", action="store_true", help="Print detections as a JSON list.")
    args = parser.parse_args()

    img_w, img_h = args.image_size
    if img_w < 1 or img_h < 1:
        raise ValueError("--image-size must be positive")

    if args.config:
        cfg = load_post_config(Path(args.config))
    else:
        cfg = YoloV3PostConfig(
            confidence_threshold=args.conf,
            nms_threshold=args.nms,
            has_objectness=bool(args.objectness),
            max_workers=int(args.workers),
        )

    catalog = load_class_names(args.names)
    tensors = _load_tensors(Path(args.tensors))

    post = YoloV3Postprocessor(cfg, catalog)
    detections = post.process(tensors, image_size=(img_w, img_h))

    if args.json:
        print(json.dumps([det.to_dict() for det in detections], indent=2))
        return 0

    for det in detections:
        x, y, w, h = det.box.as_xywh()
        print(f"{det.id} {det.label} x={x:.1f} y={y:.1f} w={w:.1f} h={h:.1f}")
    print(f"detections={len(detections)} classes={len(catalog)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
