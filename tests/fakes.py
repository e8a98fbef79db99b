"""Deterministic CPU stand-ins for onnxruntime sessions.

They follow the ``GraphRunner`` contract: inputs are consumed (moved out)
and one output per declared name is returned.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from moonshine_onnx.tensor import Tensor

HIDDEN_DIM = 4
VOCAB_SIZE = 16


class FakeEncoder:
    """Maps N samples to a ``[1, T, HIDDEN_DIM]`` hidden state (T = N // 320, min 1)."""

    input_names = ("input_values",)
    output_names = ("last_hidden_state",)

    def __init__(self) -> None:
        self.received: list[np.ndarray] = []
        self.closed = False

    def run(self, inputs: Sequence[Tensor]) -> list[Tensor]:
        assert len(inputs) == 1
        audio = inputs[0].take()
        self.received.append(audio)
        frames = max(audio.shape[1] // 320, 1)
        hidden = np.full((1, frames, HIDDEN_DIM), 0.5, dtype=np.float32)
        return [Tensor(hidden)]

    def close(self) -> None:
        self.closed = True


class FakeDecoder:
    """Emits a scripted token sequence, one token per step.

    Each layer declares decoder and encoder key/value cache inputs. Decoder
    cache outputs grow by one position per step; encoder cache outputs are
    full-length on the first step and a one-position placeholder afterwards,
    so only the replacement policy keeps them intact. Every output is filled
    with the step index that produced it.
    """

    def __init__(
        self,
        script: Sequence[int],
        num_layers: int = 2,
        num_kv_heads: int = 8,
        head_dim: int = 36,
        encoder_frames: int = 3,
    ) -> None:
        self._script = list(script)
        self._num_kv_heads = num_kv_heads
        self._head_dim = head_dim
        self._encoder_frames = encoder_frames

        cache_names = []
        for layer in range(num_layers):
            for kind in ("decoder.key", "decoder.value", "encoder.key", "encoder.value"):
                cache_names.append(f"{layer}.{kind}")
        self.input_names = (
            "input_ids",
            "encoder_hidden_states",
            *(f"past_key_values.{name}" for name in cache_names),
            "use_cache_branch",
        )
        self.output_names = ("logits", *(f"present.{name}" for name in cache_names))

        self.calls: list[dict] = []
        self.closed = False

    def run(self, inputs: Sequence[Tensor]) -> list[Tensor]:
        assert len(inputs) == len(self.input_names)
        arrays = [tensor.take() for tensor in inputs]
        step = len(self.calls)
        use_cache_branch = bool(arrays[-1][0])
        self.calls.append(
            {
                "input_ids": arrays[0].tolist(),
                "hidden_state": arrays[1],
                "cache_shapes": [a.shape for a in arrays[2:-1]],
                "cache_values": list(arrays[2:-1]),
                "use_cache_branch": use_cache_branch,
                "use_cache_branch_dtype": arrays[-1].dtype,
                "input_ids_dtype": arrays[0].dtype,
            }
        )

        token = self._script[min(step, len(self._script) - 1)]
        logits = np.zeros((1, 1, VOCAB_SIZE), dtype=np.float32)
        logits[0, 0, token] = 10.0

        outputs = [Tensor(logits)]
        for name in self.output_names[1:]:
            if "encoder" in name:
                positions = 1 if use_cache_branch else self._encoder_frames
            else:
                positions = step + 1
            shape = (1, self._num_kv_heads, positions, self._head_dim)
            outputs.append(Tensor(np.full(shape, float(step), dtype=np.float32)))
        return outputs

    def close(self) -> None:
        self.closed = True
