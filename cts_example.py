#!/usr/bin/env python3
from cbccts import Format, new_cbc_cts_decrypter, new_cbc_cts_encrypter
from ctsutil import AesBlock

"""
CBC-CTS round trip

Encrypt 0x54 bytes (five full AES blocks and four bytes over) with AES-256 in CBC-CTS mode, format CS3, then decrypt
it again. The ciphertext is the same length as the plaintext, no padding required.
"""


BLOCK_SIZE = 16


def round_trip(plaintext: bytes, key: bytes, iv: bytes, fmt: Format = Format.CS3) -> bytes:
    """
    >>> key = bytes(range(32))
    >>> iv = bytes(i * 2 for i in range(BLOCK_SIZE))
    >>> data = bytes(i * 7 % 256 for i in range(0x54))
    >>> round_trip(data, key, iv) == data
    True
    >>> all(round_trip(data, key, iv, fmt) == data for fmt in Format)
    True
    """
    block = AesBlock(key)

    encrypter = new_cbc_cts_encrypter(block, iv, fmt)
    encoded = bytearray(len(plaintext))
    encrypter.process(encoded, plaintext)

    decrypter = new_cbc_cts_decrypter(block, iv, fmt)
    decoded = bytearray(len(encoded))
    decrypter.process(decoded, encoded)

    return bytes(decoded)


def main():
    key = bytes(range(32))
    iv = bytes(i * 2 for i in range(BLOCK_SIZE))
    data = bytes(i * 7 % 256 for i in range(0x54))

    decoded = round_trip(data, key, iv)

    print(f"{len(data)} bytes --> {len(decoded)} bytes, round trip ok: {decoded == data}")


if __name__ == "__main__":
    main()
