# randomart/utils.py
"""
Small collaborators shared by the grammar engine and the evaluator.

- LinearCongruentialGenerator: the seeded pseudorandom stream owned by a grammar
- fnv1a: hashes a text label into a 64-bit seed
- Colour: the RGB record produced by evaluating a tree
"""
from dataclasses import dataclass

import numpy as np


## --- Constants ---
MASK_64 = (1 << 64) - 1
LCG_MULTIPLIER = 6364136223846793005
LCG_INCREMENT = 1442695040888963407
FNV_OFFSET_BASIS = 0xcbf29ce484222325
FNV_PRIME = 0x100000001b3


class LinearCongruentialGenerator:
    """
    64-bit linear congruential generator.

    Every generated tree depends on the exact draw sequence, so the constants and
    the float conversion are fixed: changing either changes every image.

    Attributes:
        state (int): Current 64-bit state
        draws (int): Number of values handed out so far

    Examples:
        >>> rng = LinearCongruentialGenerator(42)
        >>> 0.0 <= rng.next_float() < 1.0
        True
    """
    def __init__(self, seed: int):
        self.state = seed & MASK_64
        self.draws = 0

    def next_u64(self) -> int:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) & MASK_64
        self.draws += 1
        return self.state

    def next_float(self) -> np.float32:
        """Returns the top 24 bits of the next state as a float32 in [0, 1)."""
        return np.float32((self.next_u64() >> 40) / float(1 << 24))

    def __repr__(self):
        return f"LinearCongruentialGenerator(state={self.state}, draws={self.draws})"


def fnv1a(text: str) -> int:
    """
    Hashes a text label into a 64-bit seed (FNV-1a over the UTF-8 bytes).

    Examples:
        >>> hex(fnv1a("a"))
        '0xaf63dc4c8601ec8c'
    """
    value = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * FNV_PRIME) & MASK_64
    return value


@dataclass(frozen=True)
class Colour:
    r: float
    g: float
    b: float
