import numpy as np
import pytest

from ocr_reconstruct.preprocessing.transforms import (
    PaddingEntry,
    ScaleEntry,
    TransformRecord,
    add_letterbox_if_needed,
    get_padding_h,
    increase_min_side,
    reduce_max_side,
)
from ocr_reconstruct.types import Quadrilateral


class TestTransformRecord:
    """Inverse replay of recorded geometry changes"""

    def setup_method(self):
        self.record = TransformRecord(raw_height=100, raw_width=200)

    def test_empty_record_is_identity(self):
        quad = Quadrilateral.from_rect(10, 20, 30, 40)
        assert self.record.restore([quad]) == [quad]

    def test_entries_replayed_in_reverse(self):
        self.record.add_scale(2.0, 2.0)
        self.record.add_padding(10)

        # padding is undone first, then the scale
        assert self.record.restore_point(50, 30) == (100.0, 40.0)

    def test_order_matters(self):
        self.record.add_padding(10)
        self.record.add_scale(2.0, 2.0)

        assert self.record.restore_point(50, 30) == (100.0, 50.0)

    def test_restore_clamps_to_raw_frame(self):
        self.record.add_padding(10)
        quad = Quadrilateral.from_rect(-5, 0, 250, 200)

        restored = self.record.restore_quad(quad)
        assert restored.bounds == (0.0, 0.0, 200.0, 100.0)

    def test_restore_returns_new_quads(self):
        self.record.add_scale(0.5, 0.5)
        quad = Quadrilateral.from_rect(10, 10, 20, 20)

        restored = self.record.restore([quad])[0]
        assert restored is not quad
        assert quad.points[0] == (10.0, 10.0)
        assert restored.points[0] == (5.0, 5.0)

    def test_frame_and_len(self):
        self.record.add_scale(1.5, 2.0)
        assert len(self.record) == 1
        assert self.record.frame.height == 100
        assert self.record.frame.width == 200

    def test_entry_inverses(self):
        assert ScaleEntry(2.0, 3.0).invert(1.0, 1.0) == (3.0, 2.0)
        assert PaddingEntry(5, 2).invert(10.0, 10.0) == (8.0, 5.0)


class TestResizing:
    """Side-length limits"""

    def setup_method(self):
        self.record = TransformRecord(raw_height=1000, raw_width=3000)

    def test_reduce_max_side(self):
        img = np.zeros((1000, 3000, 3), dtype=np.uint8)
        out = reduce_max_side(img, 2000, self.record)

        assert out.shape[:2] == (672, 1984)
        entry = self.record.entries[0]
        assert entry.ratio_h == pytest.approx(1000 / 672)
        assert entry.ratio_w == pytest.approx(3000 / 1984)

    def test_reduce_max_side_noop(self):
        img = np.zeros((100, 300, 3), dtype=np.uint8)
        assert reduce_max_side(img, 2000, self.record) is img
        assert len(self.record) == 0

    def test_increase_min_side(self):
        img = np.zeros((20, 100, 3), dtype=np.uint8)
        out = increase_min_side(img, 30, self.record)

        assert out.shape[:2] == (32, 160)
        assert self.record.entries[0].ratio_h == pytest.approx(20 / 32)

    def test_increase_min_side_noop(self):
        img = np.zeros((40, 100, 3), dtype=np.uint8)
        assert increase_min_side(img, 30, self.record) is img
        assert len(self.record) == 0

    def test_collapsed_side_skips_resize(self):
        img = np.zeros((1, 5000, 3), dtype=np.uint8)
        assert reduce_max_side(img, 2000, self.record) is img
        assert len(self.record) == 0


class TestLetterbox:
    """Top and bottom padding for short or wide images"""

    def setup_method(self):
        self.record = TransformRecord(raw_height=20, raw_width=100)

    def test_padding_height(self):
        assert get_padding_h(20, 100, 30, 8.0) == 20
        assert get_padding_h(40, 800, 30, 8.0) == 80

    def test_short_image_is_padded(self):
        img = np.full((20, 100, 3), 255, dtype=np.uint8)
        out = add_letterbox_if_needed(img, self.record)

        assert out.shape[:2] == (60, 100)
        assert (out[:20] == 0).all()
        assert (out[20:40] == 255).all()
        assert self.record.entries == [PaddingEntry(20, 0, "letterbox")]

    def test_wide_image_is_padded(self):
        img = np.zeros((40, 800, 3), dtype=np.uint8)
        out = add_letterbox_if_needed(img, self.record)
        assert out.shape[:2] == (200, 800)

    def test_ratio_check_disabled(self):
        img = np.zeros((40, 800, 3), dtype=np.uint8)
        out = add_letterbox_if_needed(img, self.record, width_height_ratio=-1)
        assert out is img
        assert len(self.record) == 0

    def test_regular_image_untouched(self):
        img = np.zeros((100, 200, 3), dtype=np.uint8)
        assert add_letterbox_if_needed(img, self.record) is img
        assert len(self.record) == 0

    def test_letterbox_round_trip(self):
        img = np.zeros((20, 100, 3), dtype=np.uint8)
        add_letterbox_if_needed(img, self.record)

        padded_quad = Quadrilateral.from_rect(10, 25, 90, 35)
        restored = self.record.restore_quad(padded_quad)
        assert restored.bounds == (10.0, 5.0, 90.0, 15.0)
