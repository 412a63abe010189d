import cv2
import numpy as np
import pytest

from ocr_reconstruct import BatchProcessor, OCRPipeline, RunOptions
from ocr_reconstruct.config import OCRConfig
from ocr_reconstruct.exceptions import ConfigurationError, ImageProcessingError
from ocr_reconstruct.pipeline import sorted_boxes
from ocr_reconstruct.types import DecodedLine, Quadrilateral

from conftest import INK


def make_pipeline(det_session=None, cls_session=None, rec_session=None, characters=None):
    """Pipeline whose enabled stages are exactly the ones given a session."""
    config = OCRConfig()
    config.pipeline.use_det = det_session is not None
    config.pipeline.use_cls = cls_session is not None
    config.pipeline.use_rec = rec_session is not None
    return OCRPipeline(config=config, det_session=det_session, cls_session=cls_session,
                       rec_session=rec_session, character=characters)


def contains(outer, inner, tol=1e-6):
    o_min_x, o_min_y, o_max_x, o_max_y = outer.bounds
    i_min_x, i_min_y, i_max_x, i_max_y = inner.bounds
    return (o_min_x - tol <= i_min_x and i_max_x <= o_max_x + tol
            and o_min_y - tol <= i_min_y and i_max_y <= o_max_y + tol)


class TestSortedBoxes:
    """Reading order of detected lines"""

    def test_rows_then_columns(self):
        boxes = [
            Quadrilateral.from_rect(100, 50, 150, 60),
            Quadrilateral.from_rect(10, 55, 60, 65),
            Quadrilateral.from_rect(10, 200, 60, 210),
        ]
        ordered = sorted_boxes(boxes)
        assert [q.points[0] for q in ordered] == [(10.0, 55.0), (100.0, 50.0), (10.0, 200.0)]

    def test_distant_rows_not_swapped(self):
        boxes = [Quadrilateral.from_rect(100, 50, 150, 60), Quadrilateral.from_rect(10, 80, 60, 90)]
        assert sorted_boxes(boxes) == boxes


class TestOCRPipeline:
    """End-to-end runs with injected sessions"""

    @pytest.fixture(autouse=True)
    def _sessions(self, det_session, cls_session, rec_session, characters):
        self.det_session = det_session
        self.cls_session = cls_session
        self.rec_session = rec_session
        self.characters = characters
        self.ocr = make_pipeline(det_session, cls_session, rec_session, characters)

    def test_full_run(self, line_image):
        result = self.ocr(line_image)

        assert result.success
        assert result.line_count == 1
        line = result.lines[0]
        assert line.text == "ab"
        assert line.confidence == pytest.approx(0.9)
        assert contains(line.box, Quadrilateral.from_rect(50, 80, 349, 119))
        assert contains(Quadrilateral.from_rect(0, 0, 400, 200), line.box)
        assert result.cls_labels[0][0] == "0"
        assert result.text == "ab"
        assert result.elapse >= result.det_elapse

    def test_word_boxes(self, line_image):
        result = self.ocr(line_image, RunOptions(return_word_box=True))

        words = result.lines[0].word_boxes
        assert words.texts == ["ab"]
        assert words.confidences[0] == pytest.approx(0.9)
        assert contains(result.lines[0].box, words.quads[0], tol=1e-3)

    def test_word_boxes_off_by_default(self, line_image):
        assert self.ocr(line_image).lines[0].word_boxes is None

    def test_word_boxes_follow_letterbox(self):
        # short wide image is upscaled and then letterboxed before detection
        img = np.full((24, 300, 3), 255, dtype=np.uint8)
        img[6:18, 20:280] = INK

        result = self.ocr(img, RunOptions(return_word_box=True))
        assert result.line_count == 1
        for quad in [result.lines[0].box] + result.lines[0].word_boxes.quads:
            for x, y in quad.points:
                assert 0 <= x <= 300
                assert 0 <= y <= 24
        min_x, min_y, max_x, max_y = result.lines[0].box.bounds
        assert min_x < 20 and max_x > 279
        assert min_y < 6 and max_y > 17

    def test_blank_image(self):
        result = self.ocr(np.full((200, 400, 3), 255, dtype=np.uint8))
        assert result.lines == []
        assert not result.success

    def test_extreme_strip_still_processed(self):
        # shrinking to max_side_len would snap the height to zero
        ocr = make_pipeline(self.det_session)
        ocr.config.pipeline.max_side_len = 400

        result = ocr(np.full((20, 1000, 3), 255, dtype=np.uint8))
        assert result.lines == []

    def test_text_score_filter(self, line_image):
        assert self.ocr(line_image, RunOptions(text_score=0.95)).lines == []
        assert self.ocr.config.pipeline.text_score == 0.5

    def test_skip_classification_per_call(self, line_image):
        result = self.ocr(line_image, RunOptions(use_cls=False))
        assert result.cls_labels == []
        assert result.lines[0].text == "ab"

    def test_image_path_input(self, tmp_path, line_image):
        path = tmp_path / "line.png"
        cv2.imwrite(str(path), line_image)
        assert self.ocr(str(path)).text == "ab"

    def test_missing_image_raises(self, tmp_path):
        with pytest.raises(ImageProcessingError):
            self.ocr(str(tmp_path / "missing.png"))

    def test_detection_only(self, line_image):
        ocr = make_pipeline(det_session=self.det_session)
        result = ocr(line_image)

        assert result.line_count == 1
        assert result.lines[0].text == ""
        assert result.lines[0].box is not None

    def test_recognition_only(self, line_image):
        ocr = make_pipeline(rec_session=self.rec_session, characters=self.characters)
        result = ocr(line_image[80:120, 50:350])

        assert result.line_count == 1
        assert result.lines[0].box is None
        assert result.lines[0].text == "ab"

    def test_classification_only(self, line_image):
        ocr = make_pipeline(cls_session=self.cls_session)
        result = ocr(line_image[80:120, 50:350])

        assert result.lines == []
        assert result.cls_labels[0][0] == "0"

    def test_uninitialized_stage_raises(self, line_image):
        ocr = make_pipeline(det_session=self.det_session)
        with pytest.raises(ConfigurationError):
            ocr(line_image, RunOptions(use_rec=True))

    def test_final_res_filters_by_score(self):
        boxes = [Quadrilateral.from_rect(0, 0, 10, 10), Quadrilateral.from_rect(0, 20, 10, 30)]
        rec_res = [DecodedLine("hi", 0.9), DecodedLine("lo", 0.2)]

        result = OCRPipeline.get_final_res(boxes, None, rec_res, None, 0.5)
        assert [line.text for line in result.lines] == ["hi"]
        assert result.lines[0].box == boxes[0]


class TestBatchProcessor:
    """Parallel processing over many images"""

    @pytest.fixture(autouse=True)
    def _pipeline(self, det_session, cls_session, rec_session, characters):
        self.processor = BatchProcessor(
            make_pipeline(det_session, cls_session, rec_session, characters), max_workers=2)

    def test_results_in_input_order(self, tmp_path, line_image):
        blank = np.full((200, 400, 3), 255, dtype=np.uint8)
        progress = []

        results = self.processor.process_images(
            [line_image, str(tmp_path / "missing.png"), blank],
            progress_callback=lambda done, total: progress.append((done, total)),
        )

        assert results[0].text == "ab"
        assert results[1].metadata["error_type"] == "ImageProcessingError"
        assert not results[1].success
        assert results[2].lines == []
        assert "error" not in results[2].metadata
        assert progress[-1] == (3, 3)

    def test_process_directory(self, tmp_path, line_image):
        cv2.imwrite(str(tmp_path / "b.png"), line_image)
        cv2.imwrite(str(tmp_path / "a.png"), np.full((200, 400, 3), 255, dtype=np.uint8))
        (tmp_path / "notes.txt").write_text("not an image", encoding="utf-8")

        results = self.processor.process_directory(tmp_path)
        assert len(results) == 2
        assert results[0].lines == []
        assert results[1].text == "ab"

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ValueError):
            self.processor.process_directory(tmp_path / "nope")

    def test_empty_directory(self, tmp_path):
        assert self.processor.process_directory(tmp_path) == []
