"""
Inference session adapter for ONNX models.

Stages only depend on the ``InferenceSession`` protocol: a callable taking
one input tensor and returning the first output tensor. ``OrtInferSession``
implements it on top of onnxruntime; tests pass plain callables.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Protocol

import numpy as np

try:
    import onnxruntime as ort
    ORT_AVAILABLE = True
except ImportError:
    ORT_AVAILABLE = False
    ort = None

from ..config import EngineConfig
from ..exceptions import ConfigurationError, EngineNotAvailableError, InferenceError

logger = logging.getLogger(__name__)


class InferenceSession(Protocol):
    """Anything that maps one input tensor to one output tensor."""

    def __call__(self, input_content: np.ndarray) -> np.ndarray:
        ...


class OrtInferSession:
    """onnxruntime-backed session with provider selection and model metadata access."""

    def __init__(self, config: EngineConfig):
        if not ORT_AVAILABLE:
            raise EngineNotAvailableError("onnxruntime", "Install with: pip install onnxruntime")

        if not config.model_path:
            raise ConfigurationError("Engine model_path is not set", "model_path")
        model_path = Path(config.model_path)
        if not model_path.exists():
            raise ConfigurationError(f"Model file not found: {model_path}",
                                     "model_path", str(model_path))

        self.config = config
        self.model_path = model_path

        logger.info(f"Initializing inference session for {model_path.name}")
        self.session = ort.InferenceSession(
            str(model_path),
            sess_options=self._init_sess_options(config),
            providers=self._get_providers(config),
        )
        self.input_name = self.session.get_inputs()[0].name
        logger.info(f"Session ready with providers {self.session.get_providers()}")

    @staticmethod
    def _init_sess_options(config: EngineConfig) -> "ort.SessionOptions":
        sess_opt = ort.SessionOptions()
        sess_opt.log_severity_level = 4
        sess_opt.enable_cpu_mem_arena = config.use_arena
        sess_opt.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL

        cpu_nums = os.cpu_count() or 1
        if 1 <= config.intra_op_num_threads <= cpu_nums:
            sess_opt.intra_op_num_threads = config.intra_op_num_threads
        if 1 <= config.inter_op_num_threads <= cpu_nums:
            sess_opt.inter_op_num_threads = config.inter_op_num_threads
        return sess_opt

    @staticmethod
    def _get_providers(config: EngineConfig) -> List:
        available = ort.get_available_providers()
        providers = []

        if config.use_cuda:
            if "CUDAExecutionProvider" in available:
                providers.append(("CUDAExecutionProvider", {
                    "device_id": config.device_id,
                    "arena_extend_strategy": "kNextPowerOfTwo",
                    "cudnn_conv_algo_search": "EXHAUSTIVE",
                    "do_copy_in_default_stream": True,
                }))
            else:
                logger.warning("CUDA requested but CUDAExecutionProvider is not available, using CPU")

        if config.use_dml:
            if "DmlExecutionProvider" in available:
                providers.append("DmlExecutionProvider")
            else:
                logger.warning("DirectML requested but DmlExecutionProvider is not available")

        providers.append(("CPUExecutionProvider", {"arena_extend_strategy": "kSameAsRequested"}))
        return providers

    def __call__(self, input_content: np.ndarray) -> np.ndarray:
        try:
            return self.session.run(None, {self.input_name: input_content})[0]
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}", model_path=str(self.model_path),
                                 input_shape=getattr(input_content, "shape", None)) from e

    def _custom_metadata(self) -> dict:
        return self.session.get_modelmeta().custom_metadata_map

    def have_key(self, key: str = "character") -> bool:
        return key in self._custom_metadata()

    def get_character_list(self, key: str = "character") -> Optional[List[str]]:
        content = self._custom_metadata().get(key)
        if content is None:
            return None
        return content.splitlines()


__all__ = ["InferenceSession", "OrtInferSession", "ORT_AVAILABLE"]
