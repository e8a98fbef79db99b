"""Entry point: python -m moonshine_onnx [config.yaml] audio.wav"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

from moonshine_onnx.audio import load_wav
from moonshine_onnx.config import load_config
from moonshine_onnx.constants import SAMPLE_RATE
from moonshine_onnx.stt import create_stt_engine

logger = logging.getLogger("moonshine_onnx")

USAGE = "usage: python -m moonshine_onnx [config.yaml] audio.wav"


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) == 1:
        config_path, audio_path = Path("config.yaml"), Path(args[0])
    elif len(args) == 2:
        config_path, audio_path = Path(args[0]), Path(args[1])
    else:
        print(USAGE, file=sys.stderr)
        return 2

    config = load_config(config_path)
    _setup_logging(config.log_level)

    audio = load_wav(audio_path)
    logger.info("Loaded %s: %.1fs, %d samples", audio_path, len(audio) / SAMPLE_RATE, len(audio))

    with create_stt_engine(config.transcriber) as engine:
        t0 = time.monotonic()
        text = engine.transcribe(audio)
        elapsed = time.monotonic() - t0

    logger.info("Transcribed in %.2fs", elapsed)
    print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
