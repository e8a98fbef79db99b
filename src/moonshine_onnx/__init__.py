"""Moonshine speech-to-text on onnxruntime."""

from moonshine_onnx.config import AppConfig, TranscriberConfig, load_config
from moonshine_onnx.constants import END_TOKEN, SAMPLE_RATE, START_TOKEN
from moonshine_onnx.model import ModelConfig, ModelType, OnnxModel
from moonshine_onnx.stt import STTEngine, Transcriber, create_stt_engine

__all__ = [
    "AppConfig",
    "END_TOKEN",
    "ModelConfig",
    "ModelType",
    "OnnxModel",
    "SAMPLE_RATE",
    "START_TOKEN",
    "STTEngine",
    "Transcriber",
    "TranscriberConfig",
    "create_stt_engine",
    "load_config",
]
