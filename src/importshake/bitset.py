"""Arbitrary-width bit sets over module ids.

Module graphs routinely exceed a machine word, so a ``Bitset`` is backed by
a Python ``int``. Whole-set operations are proportional to the number of
words in use; single-bit test and set are constant time for the sizes we see.
"""
from __future__ import annotations

from typing import Iterable, Iterator


class Bitset:
    """A mutable set of non-negative integers stored as bits.

    Examples
    --------
    >>> deps = Bitset.of(0, 3)
    >>> deps.add(5)
    >>> list(deps | Bitset.of(1))
    [0, 1, 3, 5]
    >>> 3 in deps
    True
    """

    __slots__ = ("_bits",)

    def __init__(self, bits: int = 0) -> None:
        if bits < 0:
            raise ValueError("Bitset cannot hold negative bits")
        self._bits = bits

    @classmethod
    def of(cls, *indices: int) -> Bitset:
        """Create a bitset with the given bits set."""
        return cls.from_iterable(indices)

    @classmethod
    def from_iterable(cls, indices: Iterable[int]) -> Bitset:
        """Create a bitset from any iterable of indices."""
        bits = 0
        for index in indices:
            bits |= 1 << index
        return cls(bits)

    @property
    def bits(self) -> int:
        """The raw integer representation."""
        return self._bits

    def copy(self) -> Bitset:
        return Bitset(self._bits)

    # -------------------------------------------------------------------------
    # Single-bit operations
    # -------------------------------------------------------------------------

    def add(self, index: int) -> None:
        self._bits |= 1 << index

    def discard(self, index: int) -> None:
        self._bits &= ~(1 << index)

    def __contains__(self, index: object) -> bool:
        if not isinstance(index, int) or index < 0:
            return False
        return bool(self._bits >> index & 1)

    # -------------------------------------------------------------------------
    # Whole-set operations
    # -------------------------------------------------------------------------

    def __or__(self, other: Bitset) -> Bitset:
        return Bitset(self._bits | other._bits)

    def __and__(self, other: Bitset) -> Bitset:
        return Bitset(self._bits & other._bits)

    def __xor__(self, other: Bitset) -> Bitset:
        return Bitset(self._bits ^ other._bits)

    def __sub__(self, other: Bitset) -> Bitset:
        return Bitset(self._bits & ~other._bits)

    def __ior__(self, other: Bitset) -> Bitset:
        self._bits |= other._bits
        return self

    def __iand__(self, other: Bitset) -> Bitset:
        self._bits &= other._bits
        return self

    def __ixor__(self, other: Bitset) -> Bitset:
        self._bits ^= other._bits
        return self

    def __isub__(self, other: Bitset) -> Bitset:
        self._bits &= ~other._bits
        return self

    def issubset(self, other: Bitset) -> bool:
        return self._bits & ~other._bits == 0

    def isdisjoint(self, other: Bitset) -> bool:
        return self._bits & other._bits == 0

    # -------------------------------------------------------------------------
    # Protocols
    # -------------------------------------------------------------------------

    def __iter__(self) -> Iterator[int]:
        """Yield set bits in ascending order."""
        bits = self._bits
        while bits:
            low = bits & -bits
            yield low.bit_length() - 1
            bits ^= low

    def __len__(self) -> int:
        return bin(self._bits).count("1")

    def __bool__(self) -> bool:
        return self._bits != 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitset):
            return NotImplemented
        return self._bits == other._bits

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Bitset({{{', '.join(str(i) for i in self)}}})"
