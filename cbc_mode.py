from typing import Union

from ctsutil import BlockPrimitive, chunkify, fixed_xor

Buffer = Union[bytearray, memoryview]


class _CbcCodec:
    """
    CBC over buffers that are a whole number of blocks long. The chaining value starts out as the IV and keeps
    advancing across calls to process(), so several calls make up one stream
    """
    block: BlockPrimitive
    chain: bytearray

    def __init__(self, block: BlockPrimitive, iv: bytes):
        if len(iv) != block.block_size:
            raise ValueError(f"IV must be {block.block_size} bytes long, got {len(iv)}")
        self.block = block
        self.chain = bytearray(iv)

    @property
    def block_size(self) -> int:
        return self.block.block_size

    def _check_buffers(self, dst: Buffer, src: bytes):
        if len(src) % self.block_size != 0:
            raise ValueError("The length of the provided data is not a multiple of the block length.")
        if len(dst) < len(src):
            raise ValueError("Output buffer is smaller than the input")

    def process(self, dst: Buffer, src: bytes):
        raise NotImplementedError


class CbcEncrypter(_CbcCodec):
    """
    >>> from ctsutil import AesBlock
    >>> from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
    >>> key, iv = b"YELLOW SUBMARINE", bytes(16)
    >>> plaintext = b"That's a lotta words, too bad I ain't reading em"
    >>> ct = bytearray(48)
    >>> CbcEncrypter(AesBlock(key), iv).process(ct, plaintext)
    >>> encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    >>> bytes(ct) == encryptor.update(plaintext) + encryptor.finalize()
    True

    >>> CbcEncrypter(AesBlock(key), iv).process(bytearray(16), b"AAAA")
    Traceback (most recent call last):
    ValueError: The length of the provided data is not a multiple of the block length.

    >>> CbcEncrypter(AesBlock(key), b"too short")
    Traceback (most recent call last):
    ValueError: IV must be 16 bytes long, got 9
    """
    def process(self, dst: Buffer, src: bytes):
        self._check_buffers(dst, src)
        bs = self.block_size
        for i, chunk in enumerate(chunkify(bytes(src), bs)):
            chunk_crypt = self.block.encrypt(fixed_xor(chunk, self.chain))
            dst[i * bs:(i + 1) * bs] = chunk_crypt
            self.chain[:] = chunk_crypt


class CbcDecrypter(_CbcCodec):
    """
    >>> from ctsutil import AesBlock
    >>> key, iv = b"YELLOW SUBMARINE", bytes(16)
    >>> plaintext = b"Play that funky music white boy!"
    >>> buf = bytearray(plaintext)
    >>> CbcEncrypter(AesBlock(key), iv).process(buf, buf)
    >>> CbcDecrypter(AesBlock(key), iv).process(buf, buf)
    >>> bytes(buf) == plaintext
    True
    """
    def process(self, dst: Buffer, src: bytes):
        self._check_buffers(dst, src)
        bs = self.block_size
        # Copy src up front so that dst may be the very same buffer
        for i, chunk in enumerate(chunkify(bytes(src), bs)):
            dst[i * bs:(i + 1) * bs] = fixed_xor(self.block.decrypt(chunk), self.chain)
            # Prepare to XOR this block into the next decryption operation
            self.chain[:] = chunk


def cbc_encrypt(plaintext: bytes, block: BlockPrimitive, iv: bytes) -> bytes:
    """
    Encrypt block-aligned plaintext in CBC mode. No padding is applied

    >>> from ctsutil import AesBlock
    >>> ct = cbc_encrypt(b"YELLOW SUBMARINE" * 2, AesBlock(b"YELLOW SUBMARINE"), bytes(16))
    >>> ct[:16] == AesBlock(b"YELLOW SUBMARINE").encrypt(b"YELLOW SUBMARINE")
    True
    """
    ciphertext = bytearray(len(plaintext))
    CbcEncrypter(block, iv).process(ciphertext, plaintext)
    return bytes(ciphertext)


def cbc_decrypt(ciphertext: bytes, block: BlockPrimitive, iv: bytes) -> bytes:
    """
    Decrypt block-aligned ciphertext in CBC mode. No unpadding is applied

    >>> from ctsutil import AesBlock
    >>> block, iv = AesBlock(b"YELLOW SUBMARINE"), bytes(range(16))
    >>> cbc_decrypt(cbc_encrypt(b"Cooking MC's like a pound of bac", block, iv), block, iv)
    b"Cooking MC's like a pound of bac"
    """
    plaintext = bytearray(len(ciphertext))
    CbcDecrypter(block, iv).process(plaintext, ciphertext)
    return bytes(plaintext)
