"""Move-only tensor handle.

A ``Tensor`` owns exactly one numpy buffer. Handing it to the engine moves
the buffer out (``take()``) and leaves the handle empty, so a value that is
fed to several decoder steps (hidden state, cache rows) must be duplicated
explicitly with ``clone()``. Implicit copies are refused.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


class Tensor:
    """Exclusively-owned multi-dimensional array with an explicit shape."""

    __slots__ = ("_array", "_borrowed")

    def __init__(self, array: np.ndarray, *, borrowed: bool = False) -> None:
        if not isinstance(array, np.ndarray):
            raise TypeError(f"Tensor requires a numpy array, got {type(array).__name__}")
        self._array: np.ndarray | None = array
        self._borrowed = borrowed

    @classmethod
    def empty(cls, shape: Sequence[int], dtype: np.dtype | type = np.float32) -> Tensor:
        """Create a tensor with the given shape; a zero-sized axis allocates nothing."""
        return cls(np.zeros(tuple(shape), dtype=dtype))

    @classmethod
    def borrow(cls, buffer: np.ndarray, shape: Sequence[int] | None = None) -> Tensor:
        """Wrap a caller-owned buffer without copying it.

        The returned handle is a view: the engine reads it but the caller keeps
        ownership, and the underlying samples are never written.
        """
        view = buffer.view()
        if shape is not None:
            view = view.reshape(tuple(shape))
        return cls(view, borrowed=True)

    @property
    def array(self) -> np.ndarray:
        if self._array is None:
            raise RuntimeError("Tensor has been moved out and can no longer be used")
        return self._array

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.array.shape)

    @property
    def dtype(self) -> np.dtype:
        return self.array.dtype

    @property
    def is_borrowed(self) -> bool:
        return self._borrowed

    @property
    def is_valid(self) -> bool:
        return self._array is not None

    def clone(self) -> Tensor:
        """Deep-copy the data into a new, independently owned tensor."""
        return Tensor(np.array(self.array, copy=True))

    def take(self) -> np.ndarray:
        """Move the buffer out of this handle, leaving it empty."""
        array = self.array
        self._array = None
        return array

    def __copy__(self) -> Tensor:
        raise TypeError("Tensor is move-only; use clone() for an explicit copy")

    def __deepcopy__(self, memo: dict) -> Tensor:
        raise TypeError("Tensor is move-only; use clone() for an explicit copy")

    def __repr__(self) -> str:
        if self._array is None:
            return "Tensor(<moved>)"
        owner = "borrowed" if self._borrowed else "owned"
        return f"Tensor(shape={self.shape}, dtype={self.dtype}, {owner})"
