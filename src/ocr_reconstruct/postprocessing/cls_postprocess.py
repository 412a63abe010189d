"""Orientation classifier output decoding."""

from typing import List, Sequence, Tuple

import numpy as np

from ..exceptions import InputShapeError


class ClsPostProcess:
    """Map classifier logits to (label, score) pairs."""

    def __init__(self, label_list: Sequence[str] = ("0", "180")):
        self.label_list = list(label_list)

    def __call__(self, preds) -> List[Tuple[str, float]]:
        if preds is None:
            raise InputShapeError("Classifier output is None", expected="[batch, labels]")

        preds = np.asarray(preds)
        if preds.ndim != 2 or preds.shape[1] != len(self.label_list):
            raise InputShapeError(
                "Classifier output does not match the label list",
                expected=f"[batch, {len(self.label_list)}]",
                actual=preds.shape
            )

        pred_idxs = preds.argmax(axis=1)
        return [(self.label_list[idx], float(preds[i, idx]))
                for i, idx in enumerate(pred_idxs)]


__all__ = ["ClsPostProcess"]
