"""
Text line recognition: batched CRNN-style inference and CTC decoding.
"""

import logging
import time
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config import RecognitionConfig
from ..engines.inference import InferenceSession, OrtInferSession
from ..exceptions import CharacterTableError
from ..postprocessing.ctc_decoder import CTCLabelDecode
from ..preprocessing.normalize import resize_norm_img
from ..types import DecodedLine

logger = logging.getLogger(__name__)


class TextRecognizer:
    """Recognize the text of line crops."""

    def __init__(self, config: Optional[RecognitionConfig] = None,
                 session: Optional[InferenceSession] = None,
                 character: Optional[Sequence[str]] = None):
        self.config = config or RecognitionConfig()
        self.session = session if session is not None else OrtInferSession(self.config.engine)
        self.postprocess_op = self._build_decoder(character)

    def _build_decoder(self, character: Optional[Sequence[str]]) -> CTCLabelDecode:
        if character:
            return CTCLabelDecode(character=character)

        have_key = getattr(self.session, "have_key", None)
        if have_key is not None and have_key("character"):
            logger.debug("Using character table embedded in the model")
            return CTCLabelDecode(character=self.session.get_character_list("character"))

        if self.config.rec_keys_path:
            return CTCLabelDecode(character_path=self.config.rec_keys_path)

        raise CharacterTableError(
            "Model has no embedded character table and rec_keys_path is not set",
            source=self.config.engine.model_path
        )

    def __call__(self, img_list: Sequence[np.ndarray],
                 return_word_box: bool = False) -> Tuple[List[DecodedLine], float]:
        """Recognize every crop, returning results in input order."""
        start_time = time.time()
        img_num = len(img_list)
        rec_res: List[Optional[DecodedLine]] = [None] * img_num

        width_list = [img.shape[1] / float(img.shape[0]) for img in img_list]
        indices = np.argsort(np.array(width_list), kind="stable")

        img_c, img_h, img_w = self.config.rec_img_shape[:3]
        batch_num = self.config.rec_batch_num
        for beg_img_no in range(0, img_num, batch_num):
            end_img_no = min(img_num, beg_img_no + batch_num)

            max_wh_ratio = img_w / img_h
            wh_ratio_list = []
            for ino in range(beg_img_no, end_img_no):
                h, w = img_list[indices[ino]].shape[:2]
                wh_ratio = w * 1.0 / h
                max_wh_ratio = max(max_wh_ratio, wh_ratio)
                wh_ratio_list.append(wh_ratio)

            norm_img_batch = np.stack([
                resize_norm_img(img_list[indices[ino]], self.config.rec_img_shape, max_wh_ratio)
                for ino in range(beg_img_no, end_img_no)
            ]).astype(np.float32)

            preds = self.session(norm_img_batch)
            lines = self.postprocess_op(preds, return_word_box,
                                        wh_ratio_list=wh_ratio_list,
                                        max_wh_ratio=max_wh_ratio)

            for rno, line in enumerate(lines):
                rec_res[indices[beg_img_no + rno]] = line

        elapse = time.time() - start_time
        logger.debug(f"Recognized {img_num} crops in {elapse:.3f}s")
        return rec_res, elapse


__all__ = ["TextRecognizer"]
