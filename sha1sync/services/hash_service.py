"""Streaming SHA-1 digests built on a pluggable block-compression function.

The default compression function, sha1_compress, is pure Python and hashes
orders of magnitude slower than hashlib. Pass a faster one to HashEngine when
large trees make that matter.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from collections.abc import Callable

    CompressFn = Callable[[tuple[int, ...], bytes | memoryview], tuple[int, ...]]

BLOCK_SIZE = 64
LENGTH_OFFSET = BLOCK_SIZE - 8
DIGEST_HEX_LENGTH = 40

INITIAL_STATE = (0x67452301, 0xEFCDAB89, 0x98BADCFE, 0x10325476, 0xC3D2E1F0)

_MASK32 = 0xFFFFFFFF
_MASK64 = 0xFFFFFFFFFFFFFFFF
_WORDS = struct.Struct(">16I")


def _rotl(value: int, count: int) -> int:
    return ((value << count) | (value >> (32 - count))) & _MASK32


def sha1_compress(state: tuple[int, ...], block: bytes | memoryview) -> tuple[int, ...]:
    """Apply the SHA-1 round function to one 64-byte block."""
    w = list(_WORDS.unpack(block))
    for i in range(16, 80):
        w.append(_rotl(w[i - 3] ^ w[i - 8] ^ w[i - 14] ^ w[i - 16], 1))

    a, b, c, d, e = state
    for i in range(80):
        if i < 20:
            f = (b & c) | (~b & d)
            k = 0x5A827999
        elif i < 40:
            f = b ^ c ^ d
            k = 0x6ED9EBA1
        elif i < 60:
            f = (b & c) | (b & d) | (c & d)
            k = 0x8F1BBCDC
        else:
            f = b ^ c ^ d
            k = 0xCA62C1D6
        temp = (_rotl(a, 5) + f + e + k + w[i]) & _MASK32
        e = d
        d = c
        c = _rotl(b, 30)
        b = a
        a = temp

    return (
        (state[0] + a) & _MASK32,
        (state[1] + b) & _MASK32,
        (state[2] + c) & _MASK32,
        (state[3] + d) & _MASK32,
        (state[4] + e) & _MASK32,
    )


@dataclass
class HashState:
    """Working state of one digest computation.

    ``index`` counts the valid bytes in ``block``; ``total`` counts every byte
    passed to the engine since ``start``.
    """

    words: tuple[int, ...] = INITIAL_STATE
    block: bytearray = field(default_factory=lambda: bytearray(BLOCK_SIZE))
    index: int = 0
    total: int = 0


class HashEngine:
    """Incremental SHA-1: ``start``, any number of ``process`` calls, ``finish``."""

    def __init__(self, compress: CompressFn = sha1_compress) -> None:
        self._compress = compress
        self._state: HashState | None = None

    def start(self) -> None:
        """Reset to the initial constants with an empty pending block."""
        self._state = HashState()

    def _require_state(self) -> HashState:
        if self._state is None:
            raise RuntimeError("HashEngine used before start()")
        return self._state

    def process(self, data: bytes | bytearray | memoryview) -> None:
        """Feed bytes into the digest."""
        s = self._require_state()
        view = memoryview(data).cast("B")
        length = len(view)
        s.total += length
        pos = 0

        if s.index:
            take = min(BLOCK_SIZE - s.index, length)
            s.block[s.index : s.index + take] = view[:take]
            s.index += take
            pos = take
            if s.index < BLOCK_SIZE:
                return
            s.words = self._compress(s.words, s.block)
            s.index = 0

        # Whole blocks are compressed straight from the input buffer.
        while length - pos >= BLOCK_SIZE:
            s.words = self._compress(s.words, view[pos : pos + BLOCK_SIZE])
            pos += BLOCK_SIZE

        rem = length - pos
        if rem:
            s.block[:rem] = view[pos:]
            s.index = rem

    def finish(self) -> str:
        """Pad, compress the final block(s) and return the 40-char hex digest."""
        s = self._require_state()
        s.block[s.index] = 0x80
        s.index += 1
        if BLOCK_SIZE - s.index >= 8:
            s.block[s.index : LENGTH_OFFSET] = bytes(LENGTH_OFFSET - s.index)
        else:
            s.block[s.index :] = bytes(BLOCK_SIZE - s.index)
            s.words = self._compress(s.words, s.block)
            s.block[:LENGTH_OFFSET] = bytes(LENGTH_OFFSET)

        s.block[LENGTH_OFFSET:] = ((s.total * 8) & _MASK64).to_bytes(8, "big")
        s.words = self._compress(s.words, s.block)

        self._state = None
        return "".join(f"{word:08x}" for word in s.words)


def hash_content(content: bytes) -> str:
    """Compute the SHA-1 digest of in-memory content."""
    engine = HashEngine()
    engine.start()
    engine.process(content)
    return engine.finish()


def hash_file(f: BinaryIO, chunk_size: int = 1024 * 1024) -> str:
    """Compute the SHA-1 digest of an open binary file, reading it to EOF."""
    engine = HashEngine()
    engine.start()
    for chunk in iter(lambda: f.read(chunk_size), b""):
        engine.process(chunk)
    return engine.finish()
