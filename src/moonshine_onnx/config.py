"""Configuration management using Pydantic + YAML."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field


class RuntimeConfig(BaseModel):
    num_threads: int = Field(default=4, ge=1)
    # onnxruntime severity: 0=verbose, 1=info, 2=warning, 3=error, 4=fatal
    log_severity_level: int = Field(default=2, ge=0, le=4)
    log_id: str = "moonshine_onnx.OnnxModel"
    providers: list[str] = Field(default_factory=lambda: ["CPUExecutionProvider"])
    enable_cpu_mem_arena: bool = False


class TranscriberConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_type: str = "base"
    encoder_path: Path = Path("models/base/encoder_model.onnx")
    decoder_path: Path = Path("models/base/decoder_model_merged.onnx")
    tokenizer_path: Path = Path("models/tokenizer.json")
    runtime: RuntimeConfig = RuntimeConfig()


class AppConfig(BaseModel):
    transcriber: TranscriberConfig = TranscriberConfig()
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from YAML file. Falls back to defaults if file not found."""
    if path is None:
        path = Path("config.yaml")
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return AppConfig(**data)
    return AppConfig()
