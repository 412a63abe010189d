"""Postprocessing stages: region extraction, CTC decoding and word boxes."""

from .db_postprocess import DBPostProcess
from .ctc_decoder import CTCLabelDecode
from .cls_postprocess import ClsPostProcess
from .word_boxes import WordBoxReconstructor

__all__ = [
    "DBPostProcess",
    "CTCLabelDecode",
    "ClsPostProcess",
    "WordBoxReconstructor",
]
