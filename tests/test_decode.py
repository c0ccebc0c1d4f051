import unittest

import numpy as np

from yolov3_kit.config import YoloV3PostConfig
from yolov3_kit.decode import decode_tensors, expected_row_width
from yolov3_kit.errors import MalformedTensor
from yolov3_kit.types import BoundingBox, ClassCatalog


CATALOG = ClassCatalog(["cat", "dog", "bird"])


class TestYoloV3Decode(unittest.TestCase):
    def test_row_width(self) -> None:
        self.assertEqual(expected_row_width(80), 84)
        self.assertEqual(expected_row_width(80, has_objectness=True), 85)

    def test_decode_scales_to_image_pixels(self) -> None:
        # [cx, cy, w, h, scores...] on a 200x100 image
        p = np.array([[0.5, 0.5, 0.2, 0.4, 0.1, 0.9, 0.2]], dtype=np.float64)
        out = decode_tensors(p, (200, 100), YoloV3PostConfig(confidence_threshold=0.5), CATALOG)

        self.assertEqual(sorted(out), [0, 1, 2])
        self.assertEqual(out[0], [])
        self.assertEqual(out[2], [])
        self.assertEqual(len(out[1]), 1)
        cand = out[1][0]
        self.assertEqual(cand.class_id, 1)
        self.assertAlmostEqual(cand.score, 0.9)
        x, y, w, h = cand.box.as_xywh()
        self.assertAlmostEqual(x, 80.0)
        self.assertAlmostEqual(y, 30.0)
        self.assertAlmostEqual(w, 40.0)
        self.assertAlmostEqual(h, 40.0)

    def test_row_above_threshold_for_several_classes(self) -> None:
        p = np.array([[0.5, 0.5, 0.1, 0.1, 0.8, 0.7, 0.1]], dtype=np.float64)
        out = decode_tensors(p, (100, 100), YoloV3PostConfig(confidence_threshold=0.5), CATALOG)
        self.assertEqual(len(out[0]), 1)
        self.assertEqual(len(out[1]), 1)
        self.assertEqual(out[0][0].box, out[1][0].box)
        self.assertEqual(out[2], [])

    def test_threshold_is_strict(self) -> None:
        p = np.array([[0.5, 0.5, 0.1, 0.1, 0.5, 0.5, 0.5]], dtype=np.float64)
        out = decode_tensors(p, (100, 100), YoloV3PostConfig(confidence_threshold=0.5), CATALOG)
        self.assertTrue(all(not v for v in out.values()))

    def test_multiple_tensors_keep_row_order(self) -> None:
        first = np.array(
            [
                [0.1, 0.1, 0.1, 0.1, 0.6, 0.0, 0.0],
                [0.2, 0.2, 0.1, 0.1, 0.0, 0.0, 0.0],
                [0.3, 0.3, 0.1, 0.1, 0.7, 0.0, 0.0],
            ],
            dtype=np.float64,
        )
        second = np.array([[0.4, 0.4, 0.1, 0.1, 0.9, 0.0, 0.0]], dtype=np.float64)
        out = decode_tensors([first, second], (100, 100), YoloV3PostConfig(), CATALOG)
        self.assertEqual([round(c.score, 3) for c in out[0]], [0.6, 0.7, 0.9])
        self.assertEqual([round(c.box.x, 3) for c in out[0]], [5.0, 25.0, 35.0])

    def test_nested_row_lists_are_one_tensor(self) -> None:
        rows = [[0.5, 0.5, 0.2, 0.2, 0.9, 0.1, 0.0], [0.1, 0.1, 0.1, 0.1, 0.0, 0.0, 0.0]]
        out = decode_tensors(rows, (100, 100), YoloV3PostConfig(), CATALOG)
        self.assertEqual(len(out[0]), 1)
        self.assertEqual(out[0][0].box, BoundingBox(40.0, 40.0, 20.0, 20.0))

        layers = [rows[:1], rows[1:]]
        out = decode_tensors(layers, (100, 100), YoloV3PostConfig(), CATALOG)
        self.assertEqual(len(out[0]), 1)

    def test_leading_batch_axis_is_dropped(self) -> None:
        p = np.array([[[0.5, 0.5, 0.2, 0.2, 0.9, 0.0, 0.0]]], dtype=np.float32)
        out = decode_tensors(p, (100, 100), YoloV3PostConfig(), CATALOG)
        self.assertEqual(len(out[0]), 1)

    def test_objectness_column_is_skipped(self) -> None:
        # (N, 5 + C): objectness 0.0 is not multiplied into the class score.
        p = np.array([[0.5, 0.5, 0.2, 0.2, 0.0, 0.1, 0.1, 0.95]], dtype=np.float64)
        cfg = YoloV3PostConfig(has_objectness=True)
        out = decode_tensors(p, (100, 100), cfg, CATALOG)
        self.assertEqual(out[0], [])
        self.assertEqual(len(out[2]), 1)
        self.assertAlmostEqual(out[2][0].score, 0.95)
        self.assertEqual(out[2][0].box, BoundingBox(40.0, 40.0, 20.0, 20.0))

    def test_wrong_row_width_raises(self) -> None:
        p = np.zeros((3, 8), dtype=np.float32)
        with self.assertRaises(MalformedTensor):
            decode_tensors(p, (100, 100), YoloV3PostConfig(), CATALOG)

    def test_bad_second_tensor_gives_no_partial_output(self) -> None:
        good = np.array([[0.5, 0.5, 0.2, 0.2, 0.9, 0.0, 0.0]], dtype=np.float64)
        bad = np.zeros((2, 6), dtype=np.float64)
        with self.assertRaises(MalformedTensor):
            decode_tensors([good, bad], (100, 100), YoloV3PostConfig(), CATALOG)

    def test_rank_and_batch_checks(self) -> None:
        with self.assertRaises(MalformedTensor):
            decode_tensors(np.zeros((7,), dtype=np.float32), (100, 100), YoloV3PostConfig(), CATALOG)
        with self.assertRaises(MalformedTensor):
            decode_tensors(np.zeros((2, 4, 7), dtype=np.float32), (100, 100), YoloV3PostConfig(), CATALOG)

    def test_malformed_tensor_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            decode_tensors(np.zeros((1, 5), dtype=np.float32), (100, 100), YoloV3PostConfig(), CATALOG)

    def test_empty_tensor(self) -> None:
        out = decode_tensors(np.zeros((0, 7), dtype=np.float32), (100, 100), YoloV3PostConfig(), CATALOG)
        self.assertEqual(out, {0: [], 1: [], 2: []})


if __name__ == "__main__":
    unittest.main()
