"""OCR Reconstruct - text region and word box reconstruction for OCR models.

Turns raw DB detector probability maps and CTC recognizer outputs into text
lines with quadrilaterals in the coordinates of the original image, and
optionally into per-word (Latin) or per-ideograph (CJK) boxes.

Examples
--------
    from ocr_reconstruct import extract_text, OCRPipeline, RunOptions

    # Quick text extraction
    text = extract_text("document.jpg")

    # Full results with word boxes
    ocr = OCRPipeline()
    result = ocr("document.jpg", RunOptions(return_word_box=True))
    for line in result.lines:
        print(line.text, line.word_boxes.texts)

    # Postprocessing stages on their own
    from ocr_reconstruct import DBPostProcess, CTCLabelDecode
    regions = DBPostProcess()(prob_map, image_height, image_width)
"""

from .pipeline import OCRPipeline
from .batch_processor import BatchProcessor
from .config import OCRConfig, RunOptions
from .types import (
    Quadrilateral,
    ScoredRegion,
    Script,
    Orientation,
    Word,
    DecodedLine,
    WordBoxResult,
    LineResult,
    OCRResult,
)
from .postprocessing import DBPostProcess, CTCLabelDecode, ClsPostProcess, WordBoxReconstructor
from .preprocessing import TransformRecord
from .exceptions import (
    OCRReconstructError,
    EngineNotAvailableError,
    InferenceError,
    ImageProcessingError,
    InputShapeError,
    GeometryError,
    CharacterTableError,
    ConfigurationError,
)
from .utils.logging import setup_logging

__version__ = "1.0.0"

__all__ = [
    'OCRPipeline',
    'BatchProcessor',
    'OCRConfig',
    'RunOptions',
    'Quadrilateral',
    'ScoredRegion',
    'Script',
    'Orientation',
    'Word',
    'DecodedLine',
    'WordBoxResult',
    'LineResult',
    'OCRResult',
    'DBPostProcess',
    'CTCLabelDecode',
    'ClsPostProcess',
    'WordBoxReconstructor',
    'TransformRecord',
    'OCRReconstructError',
    'EngineNotAvailableError',
    'InferenceError',
    'ImageProcessingError',
    'InputShapeError',
    'GeometryError',
    'CharacterTableError',
    'ConfigurationError',
    'extract_text',
    'process_images',
    'configure_logging',
]


def extract_text(image, config_path: str = None, **kwargs) -> str:
    """Extract text from an image using default settings.

    Convenience function for simple text extraction. For more control,
    use OCRPipeline directly. Keyword arguments become RunOptions.
    """
    ocr = OCRPipeline(config_path=config_path)
    options = RunOptions(**kwargs) if kwargs else None
    return ocr(image, options).text


def process_images(images: list, config_path: str = None, max_workers: int = 4, **kwargs) -> list:
    """Process multiple images in parallel and return results in input order."""
    processor = BatchProcessor(OCRPipeline(config_path=config_path), max_workers=max_workers)
    options = RunOptions(**kwargs) if kwargs else None
    return processor.process_images(images, options)


def configure_logging(level: str = "INFO", log_file: str = None) -> None:
    """Configure logging level and output destination for the library."""
    setup_logging(level=level, log_file=log_file)


# Initialize default logging
setup_logging(level="WARNING")
