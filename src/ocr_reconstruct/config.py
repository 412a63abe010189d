"""
Typed configuration for the detection, classification and recognition stages
and the pipeline that chains them. Loads from and saves to YAML.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Union
from pathlib import Path
import yaml

from .exceptions import ConfigurationError


def _check_unit_interval(value: float, key: str):
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{key} must be between 0 and 1", key, value)


def _check_image_shape(shape: List[int], key: str):
    if len(shape) != 3 or any(int(v) <= 0 for v in shape):
        raise ConfigurationError(f"{key} must be three positive integers [C, H, W]", key, shape)


@dataclass
class EngineConfig:
    """Inference session settings for one model."""
    model_path: Optional[str] = None
    intra_op_num_threads: int = -1
    inter_op_num_threads: int = -1
    use_cuda: bool = False
    device_id: int = 0
    use_dml: bool = False
    use_arena: bool = False

    def __post_init__(self):
        if self.device_id < 0:
            raise ConfigurationError("device_id must be non-negative", "device_id", self.device_id)


@dataclass
class PipelineConfig:
    """Settings shared by the whole run."""
    text_score: float = 0.5
    use_det: bool = True
    use_cls: bool = True
    use_rec: bool = True
    print_verbose: bool = False
    min_height: int = 30
    width_height_ratio: float = 8.0
    max_side_len: int = 2000
    min_side_len: int = 30
    return_word_box: bool = False

    def __post_init__(self):
        _check_unit_interval(self.text_score, "text_score")
        if self.min_height < 0:
            raise ConfigurationError("min_height must be non-negative", "min_height", self.min_height)
        if self.width_height_ratio != -1 and self.width_height_ratio <= 0:
            raise ConfigurationError("width_height_ratio must be positive or -1",
                                     "width_height_ratio", self.width_height_ratio)
        if self.max_side_len <= 0 or self.min_side_len <= 0:
            raise ConfigurationError("Side length limits must be positive", "max_side_len",
                                     (self.max_side_len, self.min_side_len))
        if self.min_side_len > self.max_side_len:
            raise ConfigurationError("min_side_len cannot exceed max_side_len", "min_side_len",
                                     self.min_side_len)


@dataclass
class DetectionConfig:
    """Text detector and DB postprocess settings."""
    engine: EngineConfig = field(default_factory=lambda: EngineConfig(
        model_path="models/ch_PP-OCRv4_det_infer.onnx"))
    limit_side_len: int = 736
    limit_type: str = "min"
    thresh: float = 0.3
    box_thresh: float = 0.5
    max_candidates: int = 1000
    unclip_ratio: float = 1.6
    use_dilation: bool = True
    score_mode: str = "fast"
    min_size: int = 3

    def __post_init__(self):
        if self.limit_type not in ("min", "max"):
            raise ConfigurationError("limit_type must be 'min' or 'max'", "limit_type", self.limit_type)
        if self.score_mode not in ("fast", "slow"):
            raise ConfigurationError("score_mode must be 'fast' or 'slow'", "score_mode", self.score_mode)
        _check_unit_interval(self.thresh, "thresh")
        _check_unit_interval(self.box_thresh, "box_thresh")
        if self.unclip_ratio <= 0:
            raise ConfigurationError("unclip_ratio must be positive", "unclip_ratio", self.unclip_ratio)
        if self.max_candidates < 1:
            raise ConfigurationError("max_candidates must be at least 1", "max_candidates",
                                     self.max_candidates)
        if self.limit_side_len <= 0:
            raise ConfigurationError("limit_side_len must be positive", "limit_side_len",
                                     self.limit_side_len)
        if self.min_size < 1:
            raise ConfigurationError("min_size must be at least 1", "min_size", self.min_size)


@dataclass
class ClassificationConfig:
    """Orientation classifier settings."""
    engine: EngineConfig = field(default_factory=lambda: EngineConfig(
        model_path="models/ch_ppocr_mobile_v2.0_cls_infer.onnx"))
    cls_image_shape: List[int] = field(default_factory=lambda: [3, 48, 192])
    cls_batch_num: int = 6
    cls_thresh: float = 0.9
    label_list: List[str] = field(default_factory=lambda: ["0", "180"])

    def __post_init__(self):
        _check_image_shape(self.cls_image_shape, "cls_image_shape")
        _check_unit_interval(self.cls_thresh, "cls_thresh")
        if self.cls_batch_num < 1:
            raise ConfigurationError("cls_batch_num must be at least 1", "cls_batch_num",
                                     self.cls_batch_num)
        if not self.label_list:
            raise ConfigurationError("label_list cannot be empty", "label_list")


@dataclass
class RecognitionConfig:
    """Text recognizer settings."""
    engine: EngineConfig = field(default_factory=lambda: EngineConfig(
        model_path="models/ch_PP-OCRv4_rec_infer.onnx"))
    rec_img_shape: List[int] = field(default_factory=lambda: [3, 48, 320])
    rec_batch_num: int = 6
    rec_keys_path: Optional[str] = None

    def __post_init__(self):
        _check_image_shape(self.rec_img_shape, "rec_img_shape")
        if self.rec_batch_num < 1:
            raise ConfigurationError("rec_batch_num must be at least 1", "rec_batch_num",
                                     self.rec_batch_num)


@dataclass
class RunOptions:
    """Per-call overrides; ``None`` keeps the configured value."""
    use_det: Optional[bool] = None
    use_cls: Optional[bool] = None
    use_rec: Optional[bool] = None
    text_score: Optional[float] = None
    box_thresh: Optional[float] = None
    unclip_ratio: Optional[float] = None
    return_word_box: Optional[bool] = None

    def __post_init__(self):
        if self.text_score is not None:
            _check_unit_interval(self.text_score, "text_score")
        if self.box_thresh is not None:
            _check_unit_interval(self.box_thresh, "box_thresh")
        if self.unclip_ratio is not None and self.unclip_ratio <= 0:
            raise ConfigurationError("unclip_ratio must be positive", "unclip_ratio", self.unclip_ratio)

    def resolve(self, name: str, default: Any) -> Any:
        value = getattr(self, name)
        return default if value is None else value


def _build_section(section_cls, values: Optional[Dict[str, Any]], section_name: str):
    values = dict(values or {})
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(f"Unknown keys in '{section_name}' section: {sorted(unknown)}",
                                 section_name)
    if "engine" in values:
        engine_values = values["engine"] or {}
        engine_unknown = set(engine_values) - {f.name for f in fields(EngineConfig)}
        if engine_unknown:
            raise ConfigurationError(
                f"Unknown keys in '{section_name}.engine' section: {sorted(engine_unknown)}",
                f"{section_name}.engine")
        defaults = section_cls().engine
        values["engine"] = EngineConfig(**{**asdict(defaults), **engine_values})
    return section_cls(**values)


@dataclass
class OCRConfig:
    """Complete configuration for an OCR run."""
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    det: DetectionConfig = field(default_factory=DetectionConfig)
    cls: ClassificationConfig = field(default_factory=ClassificationConfig)
    rec: RecognitionConfig = field(default_factory=RecognitionConfig)
    log_level: str = "WARNING"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Convert configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True)

    def save_to_file(self, file_path: Union[str, Path]):
        """Save configuration to YAML file."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(self.to_yaml())

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'OCRConfig':
        """Create configuration from dictionary."""
        config_dict = config_dict or {}
        unknown = set(config_dict) - {'pipeline', 'det', 'cls', 'rec', 'log_level'}
        if unknown:
            raise ConfigurationError(f"Unknown configuration sections: {sorted(unknown)}")

        try:
            return cls(
                pipeline=_build_section(PipelineConfig, config_dict.get('pipeline'), 'pipeline'),
                det=_build_section(DetectionConfig, config_dict.get('det'), 'det'),
                cls=_build_section(ClassificationConfig, config_dict.get('cls'), 'cls'),
                rec=_build_section(RecognitionConfig, config_dict.get('rec'), 'rec'),
                log_level=config_dict.get('log_level', 'WARNING'),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_yaml(cls, yaml_content: str) -> 'OCRConfig':
        """Create configuration from YAML string."""
        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}") from e
        if config_dict is not None and not isinstance(config_dict, dict):
            raise ConfigurationError("YAML configuration must be a mapping")
        return cls.from_dict(config_dict or {})

    @classmethod
    def load_from_file(cls, file_path: Union[str, Path]) -> 'OCRConfig':
        """Load configuration from YAML file."""
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}",
                                     "config_path", str(file_path))

        with open(file_path, 'r', encoding='utf-8') as f:
            return cls.from_yaml(f.read())

    @classmethod
    def create_default(cls) -> 'OCRConfig':
        """Create default configuration."""
        return cls()

    @classmethod
    def create_detection_only(cls) -> 'OCRConfig':
        """Create configuration that only locates text lines."""
        config = cls()
        config.pipeline.use_cls = False
        config.pipeline.use_rec = False
        return config


__all__ = [
    "EngineConfig",
    "PipelineConfig",
    "DetectionConfig",
    "ClassificationConfig",
    "RecognitionConfig",
    "RunOptions",
    "OCRConfig",
]
