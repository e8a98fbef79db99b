"""onnxruntime binding: one loaded graph, run by declared input/output names.

This is the sealed boundary around the inference engine. Everything above it
(cache policy, decode loop, facade) depends only on the ``GraphRunner``
protocol, which lets tests swap in deterministic fakes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

import onnxruntime as ort

from moonshine_onnx.config import RuntimeConfig
from moonshine_onnx.tensor import Tensor

logger = logging.getLogger(__name__)


class GraphRunner(Protocol):
    """Contract for running one model graph.

    ``run`` takes exactly one tensor per declared input, in declared order,
    consumes them, and returns one tensor per declared output, in declared
    order.
    """

    @property
    def input_names(self) -> tuple[str, ...]: ...

    @property
    def output_names(self) -> tuple[str, ...]: ...

    def run(self, inputs: Sequence[Tensor]) -> list[Tensor]: ...

    def close(self) -> None: ...


class EngineContext:
    """Explicitly owned engine settings shared by the sessions of one model.

    Replaces a process-wide runtime environment: each transcriber builds its
    own context, so thread pools and logging identity are per instance.
    """

    def __init__(self, config: RuntimeConfig | None = None) -> None:
        self._config = config or RuntimeConfig()

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    def session_options(self) -> ort.SessionOptions:
        options = ort.SessionOptions()
        options.intra_op_num_threads = self._config.num_threads
        options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        options.enable_cpu_mem_arena = self._config.enable_cpu_mem_arena
        options.log_severity_level = self._config.log_severity_level
        options.logid = self._config.log_id
        return options

    def load(self, path: Path | str) -> OnnxSession:
        return OnnxSession(path, self)


class OnnxSession:
    """A loaded onnxruntime graph with its I/O names resolved once."""

    def __init__(self, path: Path | str, context: EngineContext) -> None:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Model path is not a regular file: {path}")

        logger.info(
            "Loading ONNX graph: %s (threads=%d)", path, context.config.num_threads
        )
        try:
            self._session: ort.InferenceSession | None = ort.InferenceSession(
                str(path),
                sess_options=context.session_options(),
                providers=context.config.providers,
            )
        except Exception as e:
            raise RuntimeError(f"Failed to load model {path}: {e}") from e

        self._path = path
        self._input_names = tuple(arg.name for arg in self._session.get_inputs())
        self._output_names = tuple(arg.name for arg in self._session.get_outputs())
        logger.debug(
            "%s inputs=%s outputs=%s", path.name, self._input_names, self._output_names
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def input_names(self) -> tuple[str, ...]:
        return self._input_names

    @property
    def output_names(self) -> tuple[str, ...]:
        return self._output_names

    def run(self, inputs: Sequence[Tensor]) -> list[Tensor]:
        if self._session is None:
            raise RuntimeError(f"Session for {self._path} has been closed")
        if len(inputs) != len(self._input_names):
            raise ValueError(
                f"{self._path.name} expects {len(self._input_names)} inputs, "
                f"got {len(inputs)}"
            )

        feed = {name: tensor.take() for name, tensor in zip(self._input_names, inputs)}
        outputs = self._session.run(list(self._output_names), feed)
        return [Tensor(output) for output in outputs]

    def close(self) -> None:
        """Release the engine session. Safe to call more than once."""
        if self._session is not None:
            self._session = None
            logger.debug("Released ONNX graph: %s", self._path)
