"""Moonshine encoder/decoder model pair running on onnxruntime."""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Sequence
from pathlib import Path

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from moonshine_onnx.config import RuntimeConfig
from moonshine_onnx.constants import SAMPLE_RATE
from moonshine_onnx.decoding import GreedyDecoder, token_budget
from moonshine_onnx.runtime import EngineContext, GraphRunner
from moonshine_onnx.tensor import Tensor

logger = logging.getLogger(__name__)


class ModelConfig(BaseModel):
    """Fixed architecture constants of one model family."""

    model_config = ConfigDict(frozen=True)

    num_layers: int = Field(gt=0)
    num_kv_heads: int = Field(gt=0)
    head_dim: int = Field(gt=0)

    @property
    def cache_shape(self) -> tuple[int, int, int, int]:
        """Shape of an empty cache entry: no cached positions yet."""
        return (0, self.num_kv_heads, 1, self.head_dim)


class ModelType(enum.Enum):
    BASE = "base"
    TINY = "tiny"

    @classmethod
    def from_string(cls, value: str) -> ModelType | None:
        """Resolve a case-insensitive tag; unknown tags give None."""
        try:
            return cls(value.lower())
        except ValueError:
            return None

    @property
    def config(self) -> ModelConfig:
        return _MODEL_CONFIGS[self]


_MODEL_CONFIGS: dict[ModelType, ModelConfig] = {
    ModelType.BASE: ModelConfig(num_layers=8, num_kv_heads=8, head_dim=52),
    ModelType.TINY: ModelConfig(num_layers=6, num_kv_heads=8, head_dim=36),
}


class OnnxModel:
    """Encodes audio once, then decodes greedily into token ids.

    Owns an encoder and a decoder session for its lifetime; call ``close()``
    (or use it as a context manager) to release them.
    """

    def __init__(
        self,
        encoder: GraphRunner,
        decoder: GraphRunner,
        config: ModelConfig,
    ) -> None:
        self._encoder = encoder
        self._decoder = decoder
        self._config = config
        self._greedy = GreedyDecoder(decoder, config.cache_shape)

        num_cache = len(self._greedy.signature.past_key_values)
        if num_cache == 0 or num_cache % config.num_layers != 0:
            raise RuntimeError(
                f"Decoder declares {num_cache} cache inputs, expected a non-zero "
                f"multiple of {config.num_layers} layers"
            )

    @classmethod
    def load(
        cls,
        encoder_path: Path | str,
        decoder_path: Path | str,
        config: ModelConfig,
        runtime: RuntimeConfig | None = None,
    ) -> OnnxModel:
        """Load both graphs from disk with a fresh engine context.

        Both paths are checked before any session is created.
        """
        for path in (Path(encoder_path), Path(decoder_path)):
            if not path.is_file():
                raise FileNotFoundError(f"Model path is not a regular file: {path}")

        context = EngineContext(runtime)
        encoder = context.load(encoder_path)
        try:
            decoder = context.load(decoder_path)
        except Exception:
            encoder.close()
            raise
        try:
            return cls(encoder, decoder, config)
        except Exception:
            encoder.close()
            decoder.close()
            raise

    @classmethod
    def for_model_type(
        cls,
        model_type: ModelType,
        encoder_path: Path | str,
        decoder_path: Path | str,
        num_threads: int | None = None,
        runtime: RuntimeConfig | None = None,
    ) -> OnnxModel:
        """Load a model family; ``num_threads`` overrides ``runtime.num_threads`` when given."""
        runtime = runtime or RuntimeConfig()
        if num_threads is not None:
            runtime = runtime.model_copy(update={"num_threads": num_threads})
        return cls.load(encoder_path, decoder_path, model_type.config, runtime)

    @classmethod
    def base(cls, encoder_path: Path | str, decoder_path: Path | str, num_threads: int = 4) -> OnnxModel:
        return cls.for_model_type(ModelType.BASE, encoder_path, decoder_path, num_threads)

    @classmethod
    def tiny(cls, encoder_path: Path | str, decoder_path: Path | str, num_threads: int = 4) -> OnnxModel:
        return cls.for_model_type(ModelType.TINY, encoder_path, decoder_path, num_threads)

    @property
    def config(self) -> ModelConfig:
        return self._config

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    def run(self, audio: np.ndarray | Sequence[float]) -> list[int]:
        """Transcribe 16kHz mono samples into token ids (start/end excluded)."""
        samples = np.asarray(audio, dtype=np.float32)
        max_len = token_budget(len(samples))

        t0 = time.monotonic()
        hidden_state = self.encode(samples)
        tokens = self._greedy.decode(hidden_state, max_len)
        elapsed = time.monotonic() - t0
        logger.info(
            "Decoded %d tokens (budget=%d) from %.2fs of audio in %.2fs",
            len(tokens),
            max_len,
            len(samples) / SAMPLE_RATE,
            elapsed,
        )
        return tokens

    def encode(self, samples: np.ndarray) -> Tensor:
        """Run the encoder on the full clip and return its hidden state."""
        audio = Tensor.borrow(samples, shape=(1, len(samples)))
        outputs = self._encoder.run([audio])
        return outputs[0]

    def close(self) -> None:
        self._encoder.close()
        self._decoder.close()

    def __enter__(self) -> OnnxModel:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
