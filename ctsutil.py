from typing import Generator, Protocol

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes, BlockCipherAlgorithm


def fixed_xor(b1: bytes, b2: bytes) -> bytes:
    """
    Take two bytes arguments of equal length, return their XOR

    >>> arg1 = bytes.fromhex('1c0111001f010100061a024b53535009181c')
    >>> arg2 = bytes.fromhex('686974207468652062756c6c277320657965')
    >>> fixed_xor(arg1, arg2).hex()
    '746865206b696420646f6e277420706c6179'

    >>> fixed_xor(b"AAAA", b"AAA")
    Traceback (most recent call last):
    ValueError: Arguments are of different length
    """
    if len(b1) != len(b2):
        raise ValueError("Arguments are of different length")
    return bytes(a ^ b for a, b in zip(b1, b2))


def chunkify(b: bytes, chunk_size: int) -> Generator[bytes, None, None]:
    """
    Yield chunk_size sized chunks from b

    >>> list(chunkify(b"ABCD", 2))
    [b'AB', b'CD']

    >>> list(chunkify(b"ABCDE", 2))
    [b'AB', b'CD', b'E']
    """
    for i in range(0, len(b), chunk_size):
        yield b[i:i + chunk_size]


class BlockPrimitive(Protocol):
    """
    A block cipher keyed and ready to go. encrypt() and decrypt() take exactly one block and know nothing
    about chaining, so one primitive can be shared between any number of modes
    """
    block_size: int

    def encrypt(self, block: bytes) -> bytes:
        ...

    def decrypt(self, block: bytes) -> bytes:
        ...


class EcbBlock:
    """
    Single-block encryption using any block algorithm from the cryptography package. A fresh ECB context is made
    for every call so nothing carries over between blocks

    >>> from cryptography.hazmat.primitives.ciphers import algorithms
    >>> block = EcbBlock(algorithms.AES(bytes(24)))
    >>> block.block_size
    16
    >>> block.decrypt(block.encrypt(b"YELLOW SUBMARINE"))
    b'YELLOW SUBMARINE'

    >>> block.encrypt(b"too short")
    Traceback (most recent call last):
    ValueError: Expected exactly one block (16 bytes), got 9
    """
    block_size: int

    def __init__(self, algorithm: BlockCipherAlgorithm):
        self._cipher = Cipher(algorithm, modes.ECB())
        self.block_size = algorithm.block_size // 8

    def _check_block(self, block: bytes):
        if len(block) != self.block_size:
            raise ValueError(f"Expected exactly one block ({self.block_size} bytes), got {len(block)}")

    def encrypt(self, block: bytes) -> bytes:
        self._check_block(block)
        encryptor = self._cipher.encryptor()
        return encryptor.update(bytes(block)) + encryptor.finalize()

    def decrypt(self, block: bytes) -> bytes:
        self._check_block(block)
        decryptor = self._cipher.decryptor()
        return decryptor.update(bytes(block)) + decryptor.finalize()


class AesBlock(EcbBlock):
    """
    AES with a 128, 192 or 256 bit key

    >>> AesBlock(bytes(range(16))).encrypt(bytes.fromhex("00112233445566778899aabbccddeeff")).hex()
    '69c4e0d86a7b0430d8cdb78070b4c55a'
    >>> AesBlock(bytes(range(32))).decrypt(bytes.fromhex("8ea2b7ca516745bfeafc49904b496089")).hex()
    '00112233445566778899aabbccddeeff'

    >>> AesBlock(b"too short")
    Traceback (most recent call last):
    ValueError: Invalid key size (72) for AES.
    """
    def __init__(self, key: bytes):
        super().__init__(algorithms.AES(key))
