"""STT engine abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np


class STTEngine(ABC):
    """Abstract base class for Speech-to-Text engines."""

    @abstractmethod
    def transcribe(self, audio: np.ndarray | Sequence[float]) -> str:
        """Transcribe audio to text.

        Args:
            audio: Mono float32 samples at ``sample_rate``.

        Returns:
            Transcribed text string; empty when nothing was recognized.
        """
        ...

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Sample rate in Hz the engine expects."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release model resources."""
        ...

    def __call__(self, audio: np.ndarray | Sequence[float]) -> str:
        return self.transcribe(audio)

    def __enter__(self) -> STTEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
