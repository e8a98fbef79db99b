"""STT engine abstraction layer."""

from moonshine_onnx.stt.base import STTEngine
from moonshine_onnx.stt.factory import create_stt_engine
from moonshine_onnx.stt.transcriber import Transcriber

__all__ = ["STTEngine", "Transcriber", "create_stt_engine"]
