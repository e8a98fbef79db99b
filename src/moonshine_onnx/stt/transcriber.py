"""Moonshine transcriber: ONNX model plus tokenizer behind the STT interface."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import numpy as np
from tokenizers import Tokenizer

from moonshine_onnx.config import RuntimeConfig
from moonshine_onnx.constants import SAMPLE_RATE
from moonshine_onnx.model import ModelType, OnnxModel
from moonshine_onnx.stt.base import STTEngine

logger = logging.getLogger(__name__)


def load_tokenizer(path: Path | str) -> Tokenizer:
    """Read a serialized ``tokenizer.json`` and build the tokenizer from it."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not path.is_file():
        raise FileNotFoundError(f"Not a regular file: {path}")

    blob = path.read_text(encoding="utf-8")
    return Tokenizer.from_str(blob)


class Transcriber(STTEngine):
    """Speech-to-text with a Moonshine encoder/decoder pair.

    Not safe for concurrent ``transcribe`` calls; use one instance per thread.
    """

    def __init__(
        self,
        model_type: ModelType | str,
        encoder_path: Path | str,
        decoder_path: Path | str,
        tokenizer_path: Path | str,
        num_threads: int | None = None,
        runtime: RuntimeConfig | None = None,
    ) -> None:
        if isinstance(model_type, str):
            resolved = ModelType.from_string(model_type)
            if resolved is None:
                raise ValueError(f"Unknown model type: {model_type}")
            model_type = resolved

        runtime = runtime or RuntimeConfig()
        if num_threads is not None:
            runtime = runtime.model_copy(update={"num_threads": num_threads})

        self._model_type = model_type
        self._tokenizer = load_tokenizer(tokenizer_path)
        logger.info(
            "Loading Moonshine %s model (threads=%d)", model_type.value, runtime.num_threads
        )
        self._model: OnnxModel | None = OnnxModel.for_model_type(
            model_type, encoder_path, decoder_path, runtime=runtime
        )
        logger.info("Moonshine %s model loaded successfully", model_type.value)

    @property
    def model_type(self) -> ModelType:
        return self._model_type

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    def transcribe(self, audio: np.ndarray | Sequence[float]) -> str:
        """Transcribe 16kHz mono samples.

        Never raises: any failure is logged and reported as an empty string.
        Tokens produced before a failure are discarded.
        """
        try:
            if self._model is None:
                raise RuntimeError("Transcriber has been closed")

            tokens = self._model.run(audio)
            if not tokens:
                logger.info("STT result: <empty>")
                return ""

            text = self._tokenizer.decode(tokens)
            logger.info("STT result (%d tokens): %s", len(tokens), text)
            return text
        except Exception:
            logger.exception("Transcription failed")
            return ""

    def close(self) -> None:
        model = self._model
        self._model = None
        if model is not None:
            model.close()
            logger.info("Moonshine %s model released", self._model_type.value)
