import io
import logging

import cv2
import numpy as np
import pytest
from PIL import Image

from ocr_reconstruct.exceptions import ConfigurationError, ImageProcessingError
from ocr_reconstruct.types import OCRResult
from ocr_reconstruct.utils import load_image, validate_image
from ocr_reconstruct.utils.logging import (
    get_logger,
    log_stage_timings,
    resolve_level,
    setup_logger,
    setup_logging,
)


class TestLoadImage:
    """Image inputs normalized to BGR uint8"""

    def setup_method(self):
        self.bgr = np.zeros((20, 30, 3), dtype=np.uint8)
        self.bgr[:, :, 2] = 255

    def test_from_path(self, tmp_path):
        path = tmp_path / "red.png"
        cv2.imwrite(str(path), self.bgr)

        np.testing.assert_array_equal(load_image(path), self.bgr)
        np.testing.assert_array_equal(load_image(str(path)), self.bgr)

    def test_from_bytes(self):
        buffer = io.BytesIO()
        Image.new("RGB", (30, 20), (255, 0, 0)).save(buffer, format="PNG")

        np.testing.assert_array_equal(load_image(buffer.getvalue()), self.bgr)

    def test_from_pil_image(self):
        image = load_image(Image.new("RGB", (30, 20), (255, 0, 0)))
        np.testing.assert_array_equal(image, self.bgr)

    def test_from_grayscale_pil(self):
        image = load_image(Image.new("L", (30, 20), 128))
        assert image.shape == (20, 30, 3)
        assert (image == 128).all()

    def test_grayscale_and_bgra_arrays(self):
        assert load_image(np.zeros((20, 30), dtype=np.uint8)).shape == (20, 30, 3)
        assert load_image(np.zeros((20, 30, 1), dtype=np.uint8)).shape == (20, 30, 3)
        assert load_image(np.zeros((20, 30, 4), dtype=np.uint8)).shape == (20, 30, 3)

    def test_float_array_cast(self):
        image = load_image(np.full((20, 30, 3), 300.0))
        assert image.dtype == np.uint8
        assert (image == 255).all()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageProcessingError):
            load_image(tmp_path / "missing.png")

    def test_undecodable_inputs(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        with pytest.raises(ImageProcessingError):
            load_image(path)
        with pytest.raises(ImageProcessingError):
            load_image(b"not an image")

    def test_unsupported_inputs(self):
        with pytest.raises(ImageProcessingError):
            load_image(42)
        with pytest.raises(ImageProcessingError):
            load_image(np.zeros((0, 10, 3), dtype=np.uint8))
        with pytest.raises(ImageProcessingError):
            load_image(np.zeros((20, 30, 2), dtype=np.uint8))

    def test_validate_image(self):
        assert validate_image(self.bgr)
        assert not validate_image(np.zeros((5,), dtype=np.uint8))
        assert not validate_image([[0, 0]])


class TestLogging:
    """Library logging setup"""

    def teardown_method(self):
        setup_logging(level="WARNING")

    def test_file_logging(self, tmp_path):
        log_file = tmp_path / "logs" / "ocr.log"
        setup_logging(level="DEBUG", log_file=str(log_file))

        logger = logging.getLogger("ocr_reconstruct")
        assert len(logger.handlers) == 2
        assert logger.level == logging.DEBUG
        assert not logger.propagate

        logger.debug("written to file")
        for handler in logger.handlers:
            handler.flush()
        assert "written to file" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging(level="INFO")
        setup_logging(level="INFO")
        assert len(logging.getLogger("ocr_reconstruct").handlers) == 1

    def test_component_logger(self):
        logger = setup_logger("OCRPipeline", "ERROR")
        assert logger.name == "ocr_reconstruct.OCRPipeline"
        assert logger.level == logging.ERROR
        assert get_logger().name == "ocr_reconstruct"
        assert get_logger("OCRPipeline") is logger

    def test_component_logger_inherits_without_level(self):
        logger = setup_logger("BatchProcessor")
        assert logger.level == logging.NOTSET

    def test_unknown_level_raises(self):
        assert resolve_level("warning") == logging.WARNING
        assert resolve_level(15) == 15
        with pytest.raises(ConfigurationError):
            resolve_level("LOUD")

    def test_stage_timings_heard_below_library_level(self):
        setup_logging(level="WARNING")
        records = []
        capture = logging.Handler()
        capture.emit = records.append
        library_logger = logging.getLogger("ocr_reconstruct")
        library_logger.addHandler(capture)
        try:
            log_stage_timings(setup_logger("Timings", "INFO"),
                              OCRResult(elapse=0.5, det_elapse=0.25))
        finally:
            library_logger.removeHandler(capture)

        assert len(records) == 1
        assert records[0].getMessage().startswith("det: 0.250s, cls: 0.000s, rec: 0.000s")
        assert "total: 0.500s (0 lines)" in records[0].getMessage()
