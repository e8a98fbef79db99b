"""Per-layer key/value cache carried between decoder steps."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

import numpy as np

from moonshine_onnx.constants import PAST_KEY_VALUES_PREFIX
from moonshine_onnx.tensor import Tensor

logger = logging.getLogger(__name__)

# (cache_empty, multi_token_output, use_cache_branch) -> replace entry?
#
# The merged decoder has two branches. Without the cache branch (first step)
# every output is the full state. With it, an empty slot, or a non-incremental
# output (more than one processed token), still carries the full state.
_REPLACE_TABLE: dict[tuple[bool, bool, bool], bool] = {
    (False, False, False): True,
    (False, False, True): False,
    (False, True, False): True,
    (False, True, True): True,
    (True, False, False): True,
    (True, False, True): True,
    (True, True, False): True,
    (True, True, True): True,
}


def should_replace(current_shape: Sequence[int], new_shape: Sequence[int], use_cache_branch: bool) -> bool:
    """Look up the replacement policy for one cache slot."""
    cache_empty = current_shape[0] == 0
    multi_token_output = new_shape[2] > 1
    return _REPLACE_TABLE[(cache_empty, multi_token_output, use_cache_branch)]


class KVCache:
    """Ordered collection of cache tensors, one per ``past_key_values`` input."""

    def __init__(self, entries: Iterable[Tensor]) -> None:
        self._entries: list[Tensor] = list(entries)

    @classmethod
    def initialize(cls, decoder_input_names: Iterable[str], shape: Sequence[int]) -> KVCache:
        """Create an empty cache entry for every declared past key/value input.

        Args:
            decoder_input_names: The decoder's declared input names, in order.
            shape: Shape template, e.g. ``(0, num_kv_heads, 1, head_dim)``.
        """
        entries = [
            Tensor.empty(shape, dtype=np.float32)
            for name in decoder_input_names
            if PAST_KEY_VALUES_PREFIX in name
        ]
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tensor]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> Tensor:
        return self._entries[index]

    @property
    def shapes(self) -> list[tuple[int, ...]]:
        return [entry.shape for entry in self._entries]

    def snapshot(self) -> list[Tensor]:
        """Clone every entry so the originals survive being fed to the engine."""
        return [entry.clone() for entry in self._entries]

    def update(self, new_values: Sequence[Tensor], use_cache_branch: bool) -> None:
        """Swap in decoder cache outputs according to the replacement table."""
        if len(new_values) != len(self._entries):
            raise ValueError(
                f"Cache update size mismatch: {len(self._entries)} entries, "
                f"{len(new_values)} new values"
            )

        replaced = 0
        for i, new_value in enumerate(new_values):
            if should_replace(self._entries[i].shape, new_value.shape, use_cache_branch):
                self._entries[i] = new_value
                replaced += 1
        logger.debug(
            "KV cache update: %d/%d replaced (use_cache_branch=%s)",
            replaced,
            len(self._entries),
            use_cache_branch,
        )
