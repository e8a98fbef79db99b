"""STT engine factory."""

from __future__ import annotations

from moonshine_onnx.config import TranscriberConfig
from moonshine_onnx.model import ModelType
from moonshine_onnx.stt.base import STTEngine
from moonshine_onnx.stt.transcriber import Transcriber


def create_stt_engine(config: TranscriberConfig) -> STTEngine:
    """Create an STT engine based on configuration."""
    model_type = ModelType.from_string(config.model_type)
    if model_type is None:
        raise ValueError(f"Unknown model type: {config.model_type}")

    return Transcriber(
        model_type,
        config.encoder_path,
        config.decoder_path,
        config.tokenizer_path,
        runtime=config.runtime,
    )
