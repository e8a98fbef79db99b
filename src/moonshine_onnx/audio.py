"""WAV loading for offline transcription."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import soundfile as sf

from moonshine_onnx.constants import SAMPLE_RATE


def load_wav(path: Path | str, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Load a WAV file as mono float32 samples.

    Multi-channel files keep only the first channel. No resampling is done.

    Raises:
        ValueError: If the file's sample rate differs from ``sample_rate``.
    """
    samples, file_rate = sf.read(str(path), dtype="float32", always_2d=True)
    if file_rate != sample_rate:
        raise ValueError(f"Expected {sample_rate}Hz audio, got {file_rate}Hz: {path}")
    return np.ascontiguousarray(samples[:, 0])
