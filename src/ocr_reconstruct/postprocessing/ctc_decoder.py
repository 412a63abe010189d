"""Greedy CTC decoding of recognizer output.

Collapses repeated timesteps, drops the blank token, maps class indices to
glyphs and, on request, groups the kept glyphs into words by script and
timestep gap so word boxes can be rebuilt later.

Examples
--------
    from ocr_reconstruct.postprocessing.ctc_decoder import CTCLabelDecode

    decoder = CTCLabelDecode(character=list("abc"))
    lines = decoder(preds)                 # preds: [batch, timesteps, classes]
    print(lines[0].text, lines[0].confidence)
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from ..exceptions import CharacterTableError, InputShapeError
from ..types import DecodedLine, Script, Word

logger = logging.getLogger(__name__)

BLANK = "blank"
SPACE = " "

# Gap (in timesteps) above which two glyphs of the same script split into words
WORD_GAP = 4
CJK_FIRST_GAP = 3
OTHER_FIRST_GAP = 2


def classify_glyph(glyph: str) -> Script:
    """CJK for glyphs in U+4E00..U+9FA5, everything else Latin/digit."""
    if glyph and "\u4e00" <= glyph[0] <= "\u9fa5":
        return Script.CJK
    return Script.LATIN_OR_DIGIT


def read_character_file(path: Union[str, Path]) -> List[str]:
    """Read a keys file with one glyph per line."""
    path = Path(path)
    if not path.exists():
        raise CharacterTableError(f"Character file not found: {path}", source=str(path))

    with open(path, "r", encoding="utf-8") as f:
        characters = [line.strip() for line in f if line.strip()]

    if not characters:
        raise CharacterTableError(f"Character file is empty: {path}", source=str(path))
    return characters


class CTCLabelDecode:
    """Convert between class indices and text with CTC collapsing."""

    ignored_tokens = (0,)

    def __init__(self, character: Optional[Sequence[str]] = None,
                 character_path: Optional[Union[str, Path]] = None):
        if character:
            glyphs = list(character)
        elif character_path is not None:
            glyphs = read_character_file(character_path)
        else:
            raise CharacterTableError("No character list or character file was provided")

        self.character = [BLANK] + glyphs + [SPACE]
        self.dict = {glyph: i for i, glyph in enumerate(self.character)}

    def __len__(self) -> int:
        return len(self.character)

    def __call__(self, preds, return_word_box: bool = False,
                 wh_ratio_list: Optional[Sequence[float]] = None,
                 max_wh_ratio: Optional[float] = None) -> List[DecodedLine]:
        if preds is None:
            raise InputShapeError("Recognizer output is None", expected="[batch, timesteps, classes]")

        preds = np.asarray(preds)
        if preds.ndim == 2:
            preds = preds[np.newaxis]
        if preds.ndim != 3:
            raise InputShapeError(
                "Recognizer output must be 3-dimensional",
                expected="[batch, timesteps, classes]",
                actual=preds.shape
            )

        if wh_ratio_list is not None and len(wh_ratio_list) != preds.shape[0]:
            raise InputShapeError(
                "wh_ratio_list length does not match the batch size",
                expected=str(preds.shape[0]),
                actual=len(wh_ratio_list)
            )

        preds_idx = preds.argmax(axis=2)
        preds_prob = preds.max(axis=2)
        return self.decode(preds_idx, preds_prob, return_word_box,
                           wh_ratio_list, max_wh_ratio)

    def _glyph(self, index: int) -> str:
        if 0 <= index < len(self.character):
            return self.character[index]
        return SPACE

    def decode(self, text_index: np.ndarray, text_prob: np.ndarray,
               return_word_box: bool = False,
               wh_ratio_list: Optional[Sequence[float]] = None,
               max_wh_ratio: Optional[float] = None) -> List[DecodedLine]:
        results = []
        for batch_idx in range(len(text_index)):
            indices = np.asarray(text_index[batch_idx])
            probs = np.asarray(text_prob[batch_idx], dtype=np.float64)

            selection = np.ones(len(indices), dtype=bool)
            selection[1:] = indices[1:] != indices[:-1]
            for token in self.ignored_tokens:
                selection &= indices != token

            glyphs = [self._glyph(int(i)) for i in indices[selection]]
            confs = probs[selection].tolist()
            confidence = float(np.mean(confs)) if confs else 0.0
            if not glyphs:
                logger.debug(f"Sample {batch_idx} decoded to empty text")
            line = DecodedLine(text="".join(glyphs), confidence=confidence)

            if return_word_box:
                columns = np.flatnonzero(selection).tolist()
                line.words = self.get_word_info(glyphs, columns, confs)
                line.text_index_len = self._text_index_len(
                    len(indices), batch_idx, wh_ratio_list, max_wh_ratio)

            results.append(line)
        return results

    @staticmethod
    def _text_index_len(timesteps: int, batch_idx: int,
                        wh_ratio_list: Optional[Sequence[float]],
                        max_wh_ratio: Optional[float]) -> float:
        if wh_ratio_list is None or not max_wh_ratio:
            return float(timesteps)
        return timesteps * wh_ratio_list[batch_idx] / max_wh_ratio

    @staticmethod
    def get_word_info(glyphs: Sequence[str], columns: Sequence[int],
                      confidences: Sequence[float]) -> List[Word]:
        """Group kept glyphs into words.

        A new word starts when the script changes or the timestep gap to the
        previous kept glyph exceeds ``WORD_GAP``. Spaces end the current word
        and are not part of any word.
        """
        if not glyphs:
            return []

        first_gap = CJK_FIRST_GAP if classify_glyph(glyphs[0]) is Script.CJK else OTHER_FIRST_GAP
        gaps = [first_gap] + [columns[i] - columns[i - 1] for i in range(1, len(columns))]

        words = []
        current = None
        for glyph, column, gap, conf in zip(glyphs, columns, gaps, confidences):
            if not glyph.strip():
                if current:
                    words.append(current)
                current = None
                continue

            script = classify_glyph(glyph)
            if current is None:
                current = Word(script=script)
            elif script is not current.script or gap > WORD_GAP:
                words.append(current)
                current = Word(script=script)

            current.characters.append(glyph)
            current.columns.append(column)
            current.confidences.append(conf)

        if current:
            words.append(current)
        return words


__all__ = ["CTCLabelDecode", "classify_glyph", "read_character_file"]
