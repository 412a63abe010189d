"""Model stages: detection, orientation classification, recognition."""

from .text_detection import TextDetector
from .classification import TextClassifier
from .text_recognition import TextRecognizer

__all__ = ["TextDetector", "TextClassifier", "TextRecognizer"]
