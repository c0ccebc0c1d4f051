from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from yolov3_kit import ClassCatalog, YoloV3PostConfig, YoloV3Postprocessor, expected_row_width


@dataclass(frozen=True)
class LatencyStats:
    runs: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float

    @classmethod
    def from_seconds(cls, samples_s: List[float]) -> "LatencyStats":
        if not samples_s:
            raise ValueError("No timing samples recorded.")
        ms = np.asarray(samples_s, dtype=np.float64) * 1000.0
        p50, p90, p95 = np.percentile(ms, [50.0, 90.0, 95.0])
        return cls(runs=int(ms.size), mean_ms=float(ms.mean()), p50_ms=float(p50), p90_ms=float(p90), p95_ms=float(p95))

    def describe(self, label: str) -> str:
        return (
            f"{label}: runs={self.runs} mean={self.mean_ms:.3f}ms "
            f"p50={self.p50_ms:.3f}ms p90={self.p90_ms:.3f}ms p95={self.p95_ms:.3f}ms"
        )


def _synthetic_rows(n_rows: int, n_classes: int, has_objectness: bool, seed: int) -> np.ndarray:
    """Raw rows shaped like a YOLOv3 output layer: [cx, cy, w, h, (obj,) scores...]."""
    rng = np.random.default_rng(seed)
    width = expected_row_width(n_classes, has_objectness)
    rows = np.zeros((n_rows, width), dtype=np.float32)
    rows[:, 0:2] = rng.uniform(0.05, 0.95, size=(n_rows, 2))
    rows[:, 2:4] = rng.uniform(0.01, 0.2, size=(n_rows, 2))
    offset = width - n_classes
    if has_objectness:
        rows[:, 4] = rng.uniform(0.0, 1.0, size=n_rows)
    # Mostly low scores with a few confident classes per row, like a real head.
    rows[:, offset:] = rng.uniform(0.0, 1.0, size=(n_rows, n_classes)) ** 8
    return rows


def _time_postprocess(post: YoloV3Postprocessor, layers: List[np.ndarray], size, warmup: int, repeats: int) -> List[float]:
    for _ in range(warmup):
        post.process(layers, image_size=size)
    samples: List[float] = []
    for _ in range(repeats):
        t0 = time.perf_counter()
        post.process(layers, image_size=size)
        samples.append(time.perf_counter() - t0)
    return samples


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Benchmark YOLOv3 post-process latency with sequential vs threaded per-class NMS."
    )
    parser.add_argument("--rows", type=int, default=10647, help="Synthetic rows per image (YOLOv3-416 has 10647).")
    parser.add_argument("--layers", type=int, default=3, help="Split rows across N output layers.")
    parser.add_argument("--classes", type=int, default=80, help="Number of classes.")
    parser.add_argument("--objectness", action="store_true", help="Use the (N, 5 + C) layout.")
    parser.add_argument("--conf", type=float, default=0.5, help="Confidence threshold.")
    parser.add_argument("--nms", type=float, default=0.4, help="IoU threshold for NMS.")
    parser.add_argument("--workers", type=int, default=4, help="Threads for the fanned-out run.")
    parser.add_argument("--image-size", type=int, nargs=2, default=(640, 480), metavar=("W", "H"))
    parser.add_argument("--warmup", type=int, default=5, help="Warmup runs not recorded.")
    parser.add_argument("--repeats", type=int, default=50, help="Recorded runs.")
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    if args.rows < 1:
        raise ValueError("--rows must be >= 1")
    if args.layers < 1:
        raise ValueError("--layers must be >= 1")
    if args.classes < 1:
        raise ValueError("--classes must be >= 1")
    if args.workers < 2:
        raise ValueError("--workers must be >= 2")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    rows = _synthetic_rows(int(args.rows), int(args.classes), bool(args.objectness), int(args.seed))
    layers = list(np.array_split(rows, int(args.layers)))
    catalog = ClassCatalog(f"class_{i}" for i in range(int(args.classes)))
    size = (int(args.image_size[0]), int(args.image_size[1]))

    base = dict(
        confidence_threshold=float(args.conf),
        nms_threshold=float(args.nms),
        has_objectness=bool(args.objectness),
    )
    sequential = YoloV3Postprocessor(YoloV3PostConfig(**base), catalog)
    threaded = YoloV3Postprocessor(YoloV3PostConfig(max_workers=int(args.workers), **base), catalog)

    dets_seq = sequential.process(layers, image_size=size)
    dets_thr = threaded.process(layers, image_size=size)
    if dets_seq != dets_thr:
        raise RuntimeError("Threaded NMS produced a different detection list than sequential NMS.")

    t_seq = _time_postprocess(sequential, layers, size, int(args.warmup), int(args.repeats))
    t_thr = _time_postprocess(threaded, layers, size, int(args.warmup), int(args.repeats))

    print(LatencyStats.from_seconds(t_seq).describe("postprocess_sequential"))
    print(LatencyStats.from_seconds(t_thr).describe(f"postprocess_threads_{args.workers}"))
    print(f"rows={args.rows} layers={args.layers} classes={args.classes} detections={len(dets_seq)}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
