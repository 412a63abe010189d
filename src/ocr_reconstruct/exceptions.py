"""Exception classes for the OCR reconstruction library.

Defines the exception hierarchy raised by the postprocessing stages and the
pipeline around them. All exceptions inherit from OCRReconstructError for
easy catching.

Degenerate geometry (empty contours, tiny boxes, empty decodes) is never an
error: those cases produce empty results. Exceptions are reserved for
malformed inputs and environment problems.

Examples
--------
    from ocr_reconstruct import OCRReconstructError, InputShapeError

    # Catch all library errors
    try:
        result = pipeline("document.jpg")
    except OCRReconstructError as e:
        print(f"OCR failed: {e}")

    # Catch specific errors
    try:
        regions = extractor(prob_map, 720, 1280)
    except InputShapeError:
        print("Detector output has the wrong shape")
"""


class OCRReconstructError(Exception):
    """Base exception for all library errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class EngineNotAvailableError(OCRReconstructError):
    """Raised when the inference backend cannot be used."""

    def __init__(self, engine_name: str, reason: str = None):
        message = f"Inference engine '{engine_name}' is not available"
        if reason:
            message += f": {reason}"

        details = {"engine_name": engine_name}
        if reason:
            details["reason"] = reason

        super().__init__(message, details)
        self.engine_name = engine_name
        self.reason = reason


class InferenceError(OCRReconstructError):
    """Raised when a model session fails to produce an output tensor."""

    def __init__(self, message: str, model_path: str = None, input_shape=None):
        details = {}
        if model_path:
            details["model_path"] = model_path
        if input_shape is not None:
            details["input_shape"] = tuple(input_shape)

        super().__init__(message, details)
        self.model_path = model_path
        self.input_shape = input_shape


class ImageProcessingError(OCRReconstructError):
    """Raised when image loading or preprocessing fails."""

    def __init__(self, message: str, image_path: str = None, operation: str = None):
        details = {}
        if image_path:
            details["image_path"] = image_path
        if operation:
            details["operation"] = operation

        super().__init__(message, details)
        self.image_path = image_path
        self.operation = operation


class InputShapeError(OCRReconstructError):
    """Raised when a probability map or logits tensor is missing or malformed."""

    def __init__(self, message: str, expected: str = None, actual=None):
        details = {}
        if expected:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = str(actual)

        super().__init__(message, details)
        self.expected = expected
        self.actual = actual


class GeometryError(OCRReconstructError):
    """Raised when a geometric value object is built from invalid points."""

    def __init__(self, message: str, point_count: int = None):
        details = {}
        if point_count is not None:
            details["point_count"] = point_count

        super().__init__(message, details)
        self.point_count = point_count


class CharacterTableError(OCRReconstructError):
    """Raised when no usable character table can be found for decoding."""

    def __init__(self, message: str, source: str = None):
        details = {}
        if source:
            details["source"] = source

        super().__init__(message, details)
        self.source = source


class ConfigurationError(OCRReconstructError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: str = None, config_value=None):
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = str(config_value)

        super().__init__(message, details)
        self.config_key = config_key
        self.config_value = config_value


__all__ = [
    "OCRReconstructError",
    "EngineNotAvailableError",
    "InferenceError",
    "ImageProcessingError",
    "InputShapeError",
    "GeometryError",
    "CharacterTableError",
    "ConfigurationError",
]
