"""Main OCR pipeline chaining detection, classification and recognition.

Resizes and letterboxes the input while recording every geometry change,
detects text lines, crops and recognizes them, optionally rebuilds word
boxes, and maps all boxes back into the coordinates of the raw input.

Examples
--------
    from ocr_reconstruct import OCRPipeline, RunOptions

    ocr = OCRPipeline()
    result = ocr("document.jpg")
    for line in result.lines:
        print(line.box.to_list(), line.text, line.confidence)

    # Per-call overrides never change the pipeline's configuration
    result = ocr("receipt.png", RunOptions(return_word_box=True, text_score=0.3))
"""

import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .config import OCRConfig, RunOptions
from .engines.inference import InferenceSession
from .exceptions import ConfigurationError, OCRReconstructError
from .models.classification import TextClassifier
from .models.text_detection import TextDetector
from .models.text_recognition import TextRecognizer
from .postprocessing.word_boxes import WordBoxReconstructor
from .preprocessing.crop import get_crop_img_list
from .preprocessing.transforms import (
    TransformRecord,
    add_letterbox_if_needed,
    increase_min_side,
    reduce_max_side,
)
from .types import DecodedLine, LineResult, OCRResult, Quadrilateral, WordBoxResult
from .utils.config import load_config
from .utils.images import ImageInput, load_image
from .utils.logging import log_stage_timings, resolve_level, setup_logger

# Boxes whose top-left corners differ by less than this many pixels in y
# are treated as one row when ordering
SAME_ROW_TOLERANCE = 10


def sorted_boxes(dt_boxes: Sequence[Quadrilateral]) -> List[Quadrilateral]:
    """Order boxes top to bottom, then left to right within a row."""
    boxes = sorted(dt_boxes, key=lambda q: (q.points[0][1], q.points[0][0]))

    for i in range(len(boxes) - 1):
        for j in range(i, -1, -1):
            cur, nxt = boxes[j], boxes[j + 1]
            if (abs(nxt.points[0][1] - cur.points[0][1]) < SAME_ROW_TOLERANCE
                    and nxt.points[0][0] < cur.points[0][0]):
                boxes[j], boxes[j + 1] = nxt, cur
            else:
                break
    return boxes


class OCRPipeline:
    """End-to-end text detection and recognition with box reconstruction.

    Stages are created from ``config``; pass ``*_session`` to supply an
    inference callable instead of loading an ONNX model.
    """

    def __init__(self,
                 config: Optional[OCRConfig] = None,
                 config_path: Optional[Union[str, Path]] = None,
                 det_session: Optional[InferenceSession] = None,
                 cls_session: Optional[InferenceSession] = None,
                 rec_session: Optional[InferenceSession] = None,
                 character: Optional[Sequence[str]] = None):
        self.config = config if config is not None else load_config(config_path)
        settings = self.config.pipeline
        level = resolve_level(self.config.log_level)
        if settings.print_verbose:
            level = min(level, logging.INFO)
        self.logger = setup_logger(self.__class__.__name__, level)

        self.text_det = (TextDetector(self.config.det, det_session)
                         if settings.use_det or det_session is not None else None)
        self.text_cls = (TextClassifier(self.config.cls, cls_session)
                         if settings.use_cls or cls_session is not None else None)
        self.text_rec = (TextRecognizer(self.config.rec, rec_session, character)
                         if settings.use_rec or rec_session is not None else None)
        self.word_box_op = WordBoxReconstructor()

        stages = [name for name, stage in
                  (("det", self.text_det), ("cls", self.text_cls), ("rec", self.text_rec)) if stage]
        self.logger.info(f"OCR pipeline initialized with stages: {stages}")

    def __call__(self, image: ImageInput, options: Optional[RunOptions] = None) -> OCRResult:
        return self.run(image, options)

    def run(self, image: ImageInput, options: Optional[RunOptions] = None) -> OCRResult:
        """Run the enabled stages on one image."""
        start_time = time.time()
        options = options or RunOptions()
        settings = self.config.pipeline

        use_det = options.resolve("use_det", settings.use_det)
        use_cls = options.resolve("use_cls", settings.use_cls)
        use_rec = options.resolve("use_rec", settings.use_rec)
        text_score = options.resolve("text_score", settings.text_score)
        return_word_box = options.resolve("return_word_box", settings.return_word_box)
        self._check_stages(use_det, use_cls, use_rec)

        try:
            img = load_image(image)
            raw_h, raw_w = img.shape[:2]
            record = TransformRecord(raw_h, raw_w)
            img = reduce_max_side(img, settings.max_side_len, record)
            img = increase_min_side(img, settings.min_side_len, record)

            dt_boxes = None
            cls_res = None
            rec_res = None
            det_elapse = cls_elapse = rec_elapse = 0.0

            if use_det:
                img = add_letterbox_if_needed(img, record, settings.min_height,
                                              settings.width_height_ratio)
                dt_boxes, det_elapse = self.text_det(
                    img,
                    box_thresh=options.box_thresh,
                    unclip_ratio=options.unclip_ratio,
                )
                if not dt_boxes:
                    self.logger.debug("No text detected")
                    return OCRResult(elapse=time.time() - start_time, det_elapse=det_elapse)

                dt_boxes = sorted_boxes(dt_boxes)
                img_list = get_crop_img_list(img, dt_boxes)
            else:
                img_list = [img]

            if use_cls:
                img_list, cls_res, cls_elapse = self.text_cls(img_list)

            if use_rec:
                rec_res, rec_elapse = self.text_rec(img_list, return_word_box)

            word_results = None
            if dt_boxes is not None and rec_res is not None and return_word_box:
                word_results = [
                    WordBoxResult(r.texts, record.restore(r.quads), r.confidences)
                    for r in self.word_box_op(img_list, dt_boxes, rec_res)
                ]

            if dt_boxes is not None:
                dt_boxes = record.restore(dt_boxes)

        except OCRReconstructError:
            raise
        except Exception as e:
            self.logger.error(f"OCR processing failed: {e}")
            raise OCRReconstructError(f"Failed to process image: {str(e)}") from e

        result = self.get_final_res(dt_boxes, cls_res, rec_res, word_results, text_score)
        result.elapse = time.time() - start_time
        result.det_elapse = det_elapse
        result.cls_elapse = cls_elapse
        result.rec_elapse = rec_elapse
        if settings.print_verbose:
            log_stage_timings(self.logger, result)
        self.logger.debug(f"Processed image in {result.elapse:.3f}s: {result.line_count} lines")
        return result

    def _check_stages(self, use_det: bool, use_cls: bool, use_rec: bool) -> None:
        for name, wanted, stage in (("det", use_det, self.text_det),
                                    ("cls", use_cls, self.text_cls),
                                    ("rec", use_rec, self.text_rec)):
            if wanted and stage is None:
                raise ConfigurationError(f"Stage '{name}' was requested but not initialized",
                                         f"pipeline.use_{name}", wanted)

    @staticmethod
    def get_final_res(dt_boxes: Optional[List[Quadrilateral]],
                      cls_res: Optional[List[Tuple[str, float]]],
                      rec_res: Optional[List[DecodedLine]],
                      word_results: Optional[List[WordBoxResult]],
                      text_score: float) -> OCRResult:
        """Assemble lines for whichever stages ran."""
        result = OCRResult(cls_labels=list(cls_res or []))

        if dt_boxes is None and rec_res is None:
            return result

        if dt_boxes is None:
            result.lines = [LineResult(None, line.text, line.confidence) for line in rec_res]
            return result

        if rec_res is None:
            result.lines = [LineResult(box) for box in dt_boxes]
            return result

        word_results = word_results or [None] * len(rec_res)
        result.lines = [
            LineResult(box, line.text, line.confidence, words)
            for box, line, words in zip(dt_boxes, rec_res, word_results)
            if line.confidence >= text_score
        ]
        return result


__all__ = ["OCRPipeline", "sorted_boxes"]
