"""Register codec: 16-bit word <-> int16/uint16 and two-register IEEE 754 float32."""

import struct
from typing import Optional, Sequence

from .errors import ConversionError
from .types import WordOrder

_WORD_MASK = 0xFFFF


def int16_from_word(word: int) -> int:
    """Reinterpret the low 16 bits of ``word`` as a signed 16-bit integer."""
    w = int(word) & _WORD_MASK
    return w - 0x10000 if w & 0x8000 else w


def uint16_from_word(word: int) -> int:
    return int(word) & _WORD_MASK


def word_from_int16(value: int) -> int:
    """Two's-complement word for ``value``; out-of-range values are truncated, not rejected."""
    return int(value) & _WORD_MASK


def word_from_uint16(value: int) -> int:
    return int(value) & _WORD_MASK


def float_to_words(value: float, order: WordOrder = WordOrder.LOW_HIGH) -> list[int]:
    """Pack ``value`` as IEEE 754 single precision into two 16-bit words."""
    try:
        (bits,) = struct.unpack(">I", struct.pack(">f", float(value)))
    except (OverflowError, struct.error, TypeError, ValueError) as e:
        raise ConversionError(f"Cannot pack {value!r} as float32: {e}") from e
    low, high = bits & _WORD_MASK, bits >> 16
    return [low, high] if order == WordOrder.LOW_HIGH else [high, low]


def words_to_float(words: Optional[Sequence[Optional[int]]], order: WordOrder = WordOrder.LOW_HIGH) -> float:
    """Unpack the first two words as IEEE 754 single precision. Raises ConversionError."""
    if words is None or len(words) < 2:
        raise ConversionError(f"Two registers required for float32, got {0 if words is None else len(words)}")
    first, second = words[0], words[1]
    if first is None or second is None:
        raise ConversionError("Register value is missing")
    if order == WordOrder.LOW_HIGH:
        low, high = first, second
    else:
        high, low = first, second
    bits = ((int(high) & _WORD_MASK) << 16) | (int(low) & _WORD_MASK)
    return struct.unpack(">f", struct.pack(">I", bits))[0]


def int32_to_words(value: int, order: WordOrder = WordOrder.LOW_HIGH) -> list[int]:
    """Two's-complement 32-bit ``value`` as two words; out-of-range values are truncated."""
    bits = int(value) & 0xFFFFFFFF
    low, high = bits & _WORD_MASK, bits >> 16
    return [low, high] if order == WordOrder.LOW_HIGH else [high, low]


def words_to_int32(words: Optional[Sequence[Optional[int]]], order: WordOrder = WordOrder.LOW_HIGH) -> int:
    """Signed 32-bit integer from the first two words. Raises ConversionError."""
    if words is None or len(words) < 2:
        raise ConversionError(f"Two registers required for int32, got {0 if words is None else len(words)}")
    first, second = words[0], words[1]
    if first is None or second is None:
        raise ConversionError("Register value is missing")
    low, high = (first, second) if order == WordOrder.LOW_HIGH else (second, first)
    bits = ((int(high) & _WORD_MASK) << 16) | (int(low) & _WORD_MASK)
    return bits - 0x100000000 if bits & 0x80000000 else bits
