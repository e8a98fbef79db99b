"""Greedy autoregressive decoding over the merged Moonshine decoder graph."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from moonshine_onnx.constants import (
    END_TOKEN,
    INPUT_IDS_NAME,
    MAX_TOKENS_PER_SECOND,
    MIN_TOKEN_COUNT,
    PAST_KEY_VALUES_PREFIX,
    SAMPLE_RATE,
    START_TOKEN,
    USE_CACHE_BRANCH_NAME,
)
from moonshine_onnx.kv_cache import KVCache
from moonshine_onnx.runtime import GraphRunner
from moonshine_onnx.tensor import Tensor

logger = logging.getLogger(__name__)


def token_budget(
    sample_count: int,
    sample_rate: int = SAMPLE_RATE,
    max_tokens_per_second: int = MAX_TOKENS_PER_SECOND,
) -> int:
    """Maximum number of decode steps for a clip of ``sample_count`` samples.

    Rounds half away from zero, then clamps to at least one step so even an
    empty clip gets a single decode attempt.
    """
    duration = sample_count / sample_rate
    max_len = math.floor(duration * max_tokens_per_second + 0.5)
    return max(max_len, MIN_TOKEN_COUNT)


def select_next_token(logits: Tensor) -> int:
    """Return the argmax of a ``[1, 1, vocab_size]`` logits tensor.

    Ties resolve to the lowest index.
    """
    shape = logits.shape
    if len(shape) != 3 or shape[0] != 1 or shape[1] != 1 or shape[2] < 1:
        raise RuntimeError(f"Unexpected logits shape {shape}, expected [1, 1, vocab_size]")
    return int(np.argmax(logits.array[0, 0]))


@dataclass(frozen=True)
class DecoderSignature:
    """Positional slots of the decoder inputs, resolved once from declared names."""

    input_ids: int
    hidden_state: int
    past_key_values: tuple[int, ...]
    use_cache_branch: int
    num_inputs: int

    @classmethod
    def from_names(cls, input_names: Sequence[str], output_names: Sequence[str]) -> DecoderSignature:
        """Map declared names to slots.

        The encoder hidden-state input is whichever single input is not the
        token ids, a cache slot or the branch flag.

        Raises:
            RuntimeError: If a slot is missing or ambiguous, or the outputs do
                not hold logits plus one value per cache input.
        """
        ids: list[int] = []
        cache: list[int] = []
        flag: list[int] = []
        other: list[int] = []
        for i, name in enumerate(input_names):
            if PAST_KEY_VALUES_PREFIX in name:
                cache.append(i)
            elif name == INPUT_IDS_NAME:
                ids.append(i)
            elif name == USE_CACHE_BRANCH_NAME:
                flag.append(i)
            else:
                other.append(i)

        for label, slots in (
            (INPUT_IDS_NAME, ids),
            (USE_CACHE_BRANCH_NAME, flag),
            ("encoder hidden state", other),
        ):
            if len(slots) != 1:
                raise RuntimeError(
                    f"Decoder must declare exactly one {label} input, found {len(slots)} "
                    f"in {list(input_names)}"
                )

        if len(output_names) != len(cache) + 1:
            raise RuntimeError(
                f"Decoder declares {len(output_names)} outputs, expected logits plus "
                f"{len(cache)} cache values"
            )

        return cls(
            input_ids=ids[0],
            hidden_state=other[0],
            past_key_values=tuple(cache),
            use_cache_branch=flag[0],
            num_inputs=len(input_names),
        )

    def build_inputs(
        self,
        input_ids: Tensor,
        hidden_state: Tensor,
        past_key_values: Sequence[Tensor],
        use_cache_branch: Tensor,
    ) -> list[Tensor]:
        inputs: list[Tensor | None] = [None] * self.num_inputs
        inputs[self.input_ids] = input_ids
        inputs[self.hidden_state] = hidden_state
        for slot, value in zip(self.past_key_values, past_key_values, strict=True):
            inputs[slot] = value
        inputs[self.use_cache_branch] = use_cache_branch
        return inputs  # type: ignore[return-value]


class GreedyDecoder:
    """Runs the decoder step by step until the end token or the token budget.

    Not safe for concurrent use; each ``decode`` call owns its own cache and
    token history.
    """

    def __init__(self, decoder: GraphRunner, cache_shape: Sequence[int]) -> None:
        self._decoder = decoder
        self._cache_shape = tuple(cache_shape)
        self._signature = DecoderSignature.from_names(
            decoder.input_names, decoder.output_names
        )

    @property
    def signature(self) -> DecoderSignature:
        return self._signature

    def decode(self, hidden_state: Tensor, max_len: int) -> list[int]:
        """Generate token ids from an encoder hidden state.

        Args:
            hidden_state: Encoder output ``[1, T, D]``; cloned for every step.
            max_len: Token budget; values below one are raised to one.

        Returns:
            Generated token ids, excluding start and end tokens.
        """
        max_token_count = max(max_len, MIN_TOKEN_COUNT)
        past_key_values = KVCache.initialize(self._decoder.input_names, self._cache_shape)
        result_tokens: list[int] = []
        cur_token = START_TOKEN

        for i in range(max_token_count):
            use_cache_branch = i > 0
            outputs = self._decode_next_token(
                cur_token, hidden_state, past_key_values, use_cache_branch
            )

            next_token = select_next_token(outputs[0])
            logger.debug("Step %d: token=%d", i, next_token)
            if next_token == END_TOKEN:
                break

            result_tokens.append(next_token)
            cur_token = next_token
            past_key_values.update(outputs[1:], use_cache_branch)
        else:
            logger.debug("Token budget of %d exhausted before end token", max_token_count)

        return result_tokens

    def _decode_next_token(
        self,
        cur_token: int,
        hidden_state: Tensor,
        past_key_values: KVCache,
        use_cache_branch: bool,
    ) -> list[Tensor]:
        inputs = self._signature.build_inputs(
            input_ids=Tensor(np.array([[cur_token]], dtype=np.int64)),
            hidden_state=hidden_state.clone(),
            past_key_values=past_key_values.snapshot(),
            use_cache_branch=Tensor(np.array([use_cache_branch], dtype=np.bool_)),
        )
        return self._decoder.run(inputs)
