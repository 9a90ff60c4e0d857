from enum import Enum
from typing import Tuple, Union

from cbc_mode import Buffer, CbcDecrypter, CbcEncrypter, _CbcCodec
from ctsutil import BlockPrimitive

"""
CBC with Ciphertext Stealing

CTS lets CBC handle data that isn't a multiple of the block size without padding it out, so the ciphertext is
exactly as long as the plaintext.

Encrypt the data as normal up to the last two (one full, one partial) blocks. Zero-pad the partial block and CBC
encrypt both, giving C1 and C2. C2 = E(C1 ^ P2||0), so decrypting C2 gives back C1 ^ P2||0 and the tail end of that
is just the tail end of C1. That means the tail end of C1 can be dropped ("stolen") from the output and rebuilt by
the decryptor.

NIST SP 800-38A Addendum describes three ways of laying out the final two blocks:

    CS1: C1 (truncated) then C2. Aligned data is left alone, so it's plain CBC on aligned data
    CS2: CS1 if the data is aligned, CS3 if it isn't
    CS3: C2 then C1 (truncated). Aligned data has its last two blocks swapped (this is what Kerberos does)

https://en.wikipedia.org/wiki/Ciphertext_stealing
"""


class InvalidFormatError(ValueError):
    pass


class DataSizeError(ValueError):
    pass


class Format(Enum):
    """
    The layout of the final two blocks of a CBC-CTS ciphertext

    >>> Format.coerce(3)
    <Format.CS3: 3>
    >>> Format.coerce("CS1")
    <Format.CS1: 1>
    >>> Format.coerce(4)
    Traceback (most recent call last):
    cbccts.InvalidFormatError: Invalid CTS format: 4
    """
    CS1 = 1
    CS2 = 2
    CS3 = 3

    @classmethod
    def coerce(cls, value: Union["Format", int, str]) -> "Format":
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value in cls.__members__:
            return cls.__members__[value]
        # bool is an int but True is not a format
        if type(value) is int and value in {fmt.value for fmt in cls}:
            return cls(value)
        raise InvalidFormatError(f"Invalid CTS format: {value!r}")

    @property
    def swaps_aligned(self) -> bool:
        return self is Format.CS3

    @property
    def full_block_first(self) -> bool:
        return self is not Format.CS1

    def check_aligned_length(self, length: int, block_size: int):
        if self.swaps_aligned and length < 2 * block_size:
            raise DataSizeError(f"data size too small; {self.name} needs at least two blocks of aligned data")

    def permute_aligned(self, buf: Buffer, block_size: int):
        """
        Apply this format's treatment of block-aligned ciphertext to buf in place. Swapping twice is a no-op, so
        this goes both ways

        >>> buf = bytearray(b"AAAABBBBCCCC")
        >>> Format.CS3.permute_aligned(buf, 4)
        >>> buf
        bytearray(b'AAAACCCCBBBB')
        >>> Format.CS2.permute_aligned(buf, 4)
        >>> buf
        bytearray(b'AAAACCCCBBBB')
        """
        if not self.swaps_aligned:
            return
        n = len(buf)
        self.check_aligned_length(n, block_size)
        py, pz = n - 2 * block_size, n - block_size
        last_but_one, last = bytes(buf[py:pz]), bytes(buf[pz:])
        buf[py:pz] = last
        buf[pz:] = last_but_one

    def place_tail(self, out: Buffer, full: bytes, partial: bytes):
        """
        Write the final full block and the truncated block into out, which is exactly len(full) + len(partial) long

        >>> out = bytearray(6)
        >>> Format.CS1.place_tail(out, full=b"FFFF", partial=b"pp")
        >>> out
        bytearray(b'ppFFFF')
        >>> Format.CS2.place_tail(out, full=b"FFFF", partial=b"pp")
        >>> out
        bytearray(b'FFFFpp')
        """
        if self.full_block_first:
            out[:len(full)] = full
            out[len(full):] = partial
        else:
            out[:len(partial)] = partial
            out[len(partial):] = full

    def split_tail(self, tail: bytes, block_size: int) -> Tuple[bytes, bytes]:
        """
        Inverse of place_tail(). Return (full, partial)

        >>> Format.CS1.split_tail(b"ppFFFF", 4)
        (b'FFFF', b'pp')
        >>> Format.CS3.split_tail(b"FFFFpp", 4)
        (b'FFFF', b'pp')
        """
        leftover = len(tail) - block_size
        if self.full_block_first:
            return bytes(tail[:block_size]), bytes(tail[block_size:])
        return bytes(tail[leftover:]), bytes(tail[:leftover])


def _tail_start(length: int, block_size: int) -> int:
    """
    Where the final full block starts in unaligned data, which is where the plain CBC part stops
    """
    tail_start = length - block_size - length % block_size
    if tail_start < 0:
        raise DataSizeError("data size too small; must be larger than one block")
    return tail_start


class CbcCtsMode:
    """
    A CBC-CTS encrypter or decrypter. Has the same process(dst, src) interface as CbcEncrypter and CbcDecrypter,
    but src can be any length of at least one block plus a byte

    Calling process() more than once continues the same CBC stream, as with the plain codecs. Only the last call
    may be given unaligned data. An instance is not safe to share between threads
    """
    block: BlockPrimitive
    codec: _CbcCodec
    format: Format
    encrypting: bool

    def __init__(self, block: BlockPrimitive, codec: _CbcCodec, fmt: Union[Format, int, str], encrypting: bool):
        self.block = block
        self.codec = codec
        self.format = Format.coerce(fmt)
        self.encrypting = encrypting

    @property
    def block_size(self) -> int:
        return self.codec.block_size

    def process(self, dst: Buffer, src: bytes):
        """
        Encrypt or decrypt src into dst. dst must be writable and the same length as src, and may be src itself
        """
        if len(dst) != len(src):
            raise ValueError(f"Output buffer must be the same length as the input ({len(dst)} != {len(src)})")
        fmt = Format.coerce(self.format)
        with memoryview(dst) as out:
            if self.encrypting:
                self._encode(out, src, fmt)
            else:
                self._decode(out, src, fmt)

    def _encode(self, out: memoryview, src: bytes, fmt: Format):
        bs = self.block_size
        leftover = len(src) % bs

        if leftover == 0:
            fmt.check_aligned_length(len(src), bs)
            self.codec.process(out, src)
            fmt.permute_aligned(out, bs)
            return

        tail_start = _tail_start(len(src), bs)
        self.codec.process(out[:tail_start], src[:tail_start])

        # Last full block and the zero-padded partial block, chained on from everything before them
        scratch = bytearray(2 * bs)
        scratch[:bs + leftover] = src[tail_start:]
        self.codec.process(scratch, scratch)
        stolen, full = scratch[:bs], scratch[bs:]

        fmt.place_tail(out[tail_start:], full=bytes(full), partial=bytes(stolen[:leftover]))

    def _decode(self, out: memoryview, src: bytes, fmt: Format):
        bs = self.block_size
        leftover = len(src) % bs

        if leftover == 0:
            if fmt.swaps_aligned:
                unswapped = bytearray(src)
                fmt.permute_aligned(unswapped, bs)
                src = unswapped
            self.codec.process(out, src)
            return

        tail_start = _tail_start(len(src), bs)
        self.codec.process(out[:tail_start], src[:tail_start])

        full, partial = fmt.split_tail(src[tail_start:], bs)

        scratch = bytearray(2 * bs)
        scratch[:leftover] = partial
        scratch[bs:] = full
        # D(full) is stolen ^ partial||0, so its tail end is the tail end of the stolen block
        scratch[leftover:bs] = self.block.decrypt(full)[leftover:]

        self.codec.process(scratch, scratch)
        out[tail_start:] = scratch[:bs + leftover]


def new_cbc_cts_encrypter(block: BlockPrimitive, iv: bytes, fmt: Union[Format, int, str]) -> CbcCtsMode:
    """
    >>> from ctsutil import AesBlock
    >>> new_cbc_cts_encrypter(AesBlock(bytes(16)), bytes(16), 0)
    Traceback (most recent call last):
    cbccts.InvalidFormatError: Invalid CTS format: 0
    """
    fmt = Format.coerce(fmt)
    return CbcCtsMode(block, CbcEncrypter(block, iv), fmt, encrypting=True)


def new_cbc_cts_decrypter(block: BlockPrimitive, iv: bytes, fmt: Union[Format, int, str]) -> CbcCtsMode:
    fmt = Format.coerce(fmt)
    return CbcCtsMode(block, CbcDecrypter(block, iv), fmt, encrypting=False)


def cbc_cts_encrypt(plaintext: bytes, block: BlockPrimitive, iv: bytes,
                    fmt: Union[Format, int, str] = Format.CS3) -> bytes:
    """
    Encrypt plaintext of any length greater than one block using CBC with ciphertext stealing

    >>> from ctsutil import AesBlock
    >>> key = bytes(range(32))
    >>> iv = bytes(i * 2 for i in range(16))
    >>> plaintext = bytes(i * 7 % 256 for i in range(0x54))
    >>> ciphertext = cbc_cts_encrypt(plaintext, AesBlock(key), iv)
    >>> len(ciphertext) == len(plaintext)
    True
    >>> cbc_cts_decrypt(ciphertext, AesBlock(key), iv) == plaintext
    True

    Aligned CS1 is plain CBC, aligned CS3 is plain CBC with the last two blocks swapped

    >>> from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
    >>> plaintext = plaintext[:64]
    >>> encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    >>> cbc = encryptor.update(plaintext) + encryptor.finalize()
    >>> cbc_cts_encrypt(plaintext, AesBlock(key), iv, Format.CS1) == cbc
    True
    >>> cbc_cts_encrypt(plaintext, AesBlock(key), iv, Format.CS3) == cbc[:32] + cbc[48:] + cbc[32:48]
    True

    >>> cbc_cts_encrypt(b"A" * 15, AesBlock(key), iv, Format.CS1)
    Traceback (most recent call last):
    cbccts.DataSizeError: data size too small; must be larger than one block
    >>> cbc_cts_encrypt(b"A" * 16, AesBlock(key), iv, Format.CS3)
    Traceback (most recent call last):
    cbccts.DataSizeError: data size too small; CS3 needs at least two blocks of aligned data
    """
    ciphertext = bytearray(len(plaintext))
    new_cbc_cts_encrypter(block, iv, fmt).process(ciphertext, plaintext)
    return bytes(ciphertext)


def cbc_cts_decrypt(ciphertext: bytes, block: BlockPrimitive, iv: bytes,
                    fmt: Union[Format, int, str] = Format.CS3) -> bytes:
    """
    Decrypt ciphertext produced by cbc_cts_encrypt() with the same format

    There's no integrity check. Tampered ciphertext decrypts "fine" to the wrong plaintext

    >>> from ctsutil import AesBlock
    >>> block, iv = AesBlock(b"YELLOW SUBMARINE"), bytes(16)
    >>> ciphertext = cbc_cts_encrypt(b"Burning 'em, if you ain't quick and nimble", block, iv)
    >>> cbc_cts_decrypt(ciphertext, block, iv)
    b"Burning 'em, if you ain't quick and nimble"
    >>> cbc_cts_decrypt(bytes([ciphertext[0] ^ 1]) + ciphertext[1:], block, iv) == b"Burning 'em, if you ain't quick and nimble"
    False
    """
    plaintext = bytearray(len(ciphertext))
    new_cbc_cts_decrypter(block, iv, fmt).process(plaintext, ciphertext)
    return bytes(plaintext)
