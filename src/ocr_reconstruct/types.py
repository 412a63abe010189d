"""Data structures and type definitions for the OCR reconstruction library.

Defines the geometric value objects, decoded-text records and pipeline
results shared between the postprocessing stages.

Geometry is immutable: ``Quadrilateral`` stores plain float tuples, and every
transform returns a new instance, so no two boxes ever share point storage.

Examples
--------
    from ocr_reconstruct.types import Quadrilateral

    quad = Quadrilateral.from_array([[10, 5], [90, 5], [90, 25], [10, 25]])
    print(quad.width, quad.height)
    shifted = quad.map(lambda x, y: (x + 4, y))
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from enum import Enum
import math

import numpy as np

from .exceptions import GeometryError


class Script(Enum):
    """Script class of a decoded glyph, used for word segmentation."""
    CJK = "cjk"
    LATIN_OR_DIGIT = "latin_or_digit"


class Orientation(Enum):
    """Reading orientation of a text line crop."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class Quadrilateral:
    """Four corner points ordered top-left, top-right, bottom-right, bottom-left."""
    points: Tuple[Tuple[float, float], ...]

    def __post_init__(self):
        points = tuple((float(p[0]), float(p[1])) for p in self.points)
        if len(points) != 4:
            raise GeometryError(
                f"Quadrilateral needs exactly 4 points, got {len(points)}",
                point_count=len(points)
            )
        object.__setattr__(self, "points", points)

    @classmethod
    def from_array(cls, array) -> "Quadrilateral":
        """Build from anything shaped (4, 2): ndarray, nested lists, tuples."""
        arr = np.asarray(array, dtype=np.float64).reshape(-1, 2)
        return cls(tuple((float(x), float(y)) for x, y in arr))

    @classmethod
    def from_rect(cls, left: float, top: float, right: float, bottom: float) -> "Quadrilateral":
        return cls(((left, top), (right, top), (right, bottom), (left, bottom)))

    def to_array(self, dtype=np.float32) -> np.ndarray:
        return np.array(self.points, dtype=dtype)

    def to_list(self) -> List[List[float]]:
        return [[x, y] for x, y in self.points]

    def map(self, fn: Callable[[float, float], Tuple[float, float]]) -> "Quadrilateral":
        """Apply ``fn`` to every point, returning a new quadrilateral."""
        return Quadrilateral(tuple(fn(x, y) for x, y in self.points))

    @property
    def width(self) -> float:
        """Length of the top edge."""
        (x0, y0), (x1, y1) = self.points[0], self.points[1]
        return math.hypot(x1 - x0, y1 - y0)

    @property
    def height(self) -> float:
        """Length of the left edge."""
        (x0, y0), (x3, y3) = self.points[0], self.points[3]
        return math.hypot(x3 - x0, y3 - y0)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Axis-aligned bounds as (min_x, min_y, max_x, max_y)."""
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return min(xs), min(ys), max(xs), max(ys)


@dataclass(frozen=True)
class ScoredRegion:
    """Detected text region with its mean probability inside the fitted box."""
    quad: Quadrilateral
    score: float


@dataclass
class Word:
    """Run of kept glyphs of one script, with their timestep columns."""
    characters: List[str] = field(default_factory=list)
    columns: List[int] = field(default_factory=list)
    script: Script = Script.LATIN_OR_DIGIT
    confidences: List[float] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.characters)

    def __len__(self) -> int:
        return len(self.characters)


@dataclass
class DecodedLine:
    """Greedy CTC decode of one recognizer sample."""
    text: str = ""
    confidence: float = 0.0
    words: List[Word] = field(default_factory=list)
    text_index_len: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not self.text


@dataclass
class WordBoxResult:
    """Word or ideograph boxes of one line, sorted left to right."""
    texts: List[str] = field(default_factory=list)
    quads: List[Quadrilateral] = field(default_factory=list)
    confidences: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.quads)


@dataclass
class LineResult:
    """One recognized text line in raw-image coordinates."""
    box: Optional[Quadrilateral] = None
    text: str = ""
    confidence: float = 0.0
    word_boxes: Optional[WordBoxResult] = None

    @property
    def word_count(self) -> int:
        return len(self.text.split()) if self.text else 0


@dataclass
class OCRResult:
    """Output of a full pipeline run."""
    lines: List[LineResult] = field(default_factory=list)
    elapse: float = 0.0
    det_elapse: float = 0.0
    cls_elapse: float = 0.0
    rec_elapse: float = 0.0
    cls_labels: List[Tuple[str, float]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines if line.text)

    @property
    def boxes(self) -> List[Quadrilateral]:
        return [line.box for line in self.lines if line.box is not None]

    @property
    def confidence(self) -> float:
        scored = [line.confidence for line in self.lines if line.text]
        if not scored:
            return 0.0
        return sum(scored) / len(scored)

    @property
    def success(self) -> bool:
        return bool(self.lines) and "error" not in self.metadata

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def word_count(self) -> int:
        return sum(line.word_count for line in self.lines)


@dataclass(frozen=True)
class ImageFrame:
    """Raw image bounds used to clamp restored coordinates."""
    height: int
    width: int


# Type aliases
Point = Tuple[float, float]
PointSequence = Sequence[Sequence[float]]


__all__ = [
    "Script",
    "Orientation",
    "Quadrilateral",
    "ScoredRegion",
    "Word",
    "DecodedLine",
    "WordBoxResult",
    "LineResult",
    "OCRResult",
    "ImageFrame",
    "Point",
    "PointSequence",
]
