"""Inference backends."""

from .inference import InferenceSession, OrtInferSession, ORT_AVAILABLE

__all__ = ["InferenceSession", "OrtInferSession", "ORT_AVAILABLE"]
