import os
import sys

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

CHARACTERS = list("abcdefghijklmnopqrstuvwxyz0123456789") + ["中", "文"]

# BGR red; anything with equal channels is background to the fake detector
INK = (0, 0, 255)


class FakeDetSession:
    """Marks coloured ink of the normalized input as text.

    Grey pixels, including black letterbox borders, never count as text.
    """

    def __init__(self, prob: float = 0.95):
        self.prob = prob
        self.calls = 0

    def __call__(self, input_content):
        self.calls += 1
        spread = input_content.max(axis=1, keepdims=True) - input_content.min(axis=1, keepdims=True)
        return np.where(spread > 1.0, self.prob, 0.0).astype(np.float32)


class FakeClsSession:
    """Returns a fixed (0, 180) probability pair for every crop."""

    def __init__(self, probs=(0.99, 0.01)):
        self.probs = np.array(probs, dtype=np.float32)

    def __call__(self, input_content):
        return np.tile(self.probs, (input_content.shape[0], 1))


class FakeRecSession:
    """Emits the same class sequence for every crop, one timestep per 8 pixels."""

    def __init__(self, sequence, num_classes: int, prob: float = 0.9):
        self.sequence = sequence
        self.num_classes = num_classes
        self.prob = prob
        self.input_shapes = []

    def __call__(self, input_content):
        self.input_shapes.append(input_content.shape)
        batch, timesteps = input_content.shape[0], input_content.shape[3] // 8
        logits = np.full((batch, timesteps, self.num_classes), 0.0, dtype=np.float32)
        logits[:, :, 0] = 1.0
        for t, cls_idx in self.sequence:
            logits[:, t, :] = 0.0
            logits[:, t, cls_idx] = self.prob
        return logits


def char_index(char: str) -> int:
    """Class index of a glyph once 'blank' is prepended."""
    return CHARACTERS.index(char) + 1


@pytest.fixture
def characters():
    return list(CHARACTERS)


@pytest.fixture
def det_session():
    return FakeDetSession()


@pytest.fixture
def cls_session():
    return FakeClsSession()


@pytest.fixture
def rec_session():
    # "ab" at timesteps 2 and 3; blank plus glyphs plus trailing space
    return FakeRecSession([(2, char_index("a")), (3, char_index("b"))],
                          num_classes=len(CHARACTERS) + 2)


@pytest.fixture
def line_image():
    """White 200x400 image with one red 300x40 text line."""
    img = np.full((200, 400, 3), 255, dtype=np.uint8)
    img[80:120, 50:350] = INK
    return img


@pytest.fixture
def make_rec_session():
    def _make(sequence, prob: float = 0.9):
        return FakeRecSession(sequence, num_classes=len(CHARACTERS) + 2, prob=prob)
    return _make


@pytest.fixture
def index_of():
    return char_index
