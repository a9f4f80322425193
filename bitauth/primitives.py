"""
Cryptographic primitives and randomness, injected into the key generators.

The generators never construct hash or curve implementations themselves; they
receive a ``CryptoPrimitives`` bundle. ``instantiate_primitives`` builds the
bundle by initializing and self-testing each primitive concurrently (they are
independent of each other) and joining the results.

The randomness source is any callable ``(n) -> bytes`` returning ``n`` bytes;
production code uses ``secrets.token_bytes``.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Callable

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from bitauth.errors import CryptoError
from bitauth.observability import BitauthLayer, get_logger

logger = get_logger("primitives", BitauthLayer.CRYPTO)

RandomSource = Callable[[int], bytes]

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

_SHA256_EMPTY = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
_RIPEMD160_EMPTY = "9c1185a5c5e9fc54612808977ee8f548b2258d31"
_SECP256K1_G = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


def secure_random_bytes(n: int) -> bytes:
    """Default randomness source."""
    return secrets.token_bytes(n)


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def _ripemd160(data: bytes) -> bytes:
    r = hashlib.new("ripemd160")
    r.update(data)
    return r.digest()


def _hmac_sha512(key: bytes, msg: bytes) -> bytes:
    return hmac.new(key, msg, hashlib.sha512).digest()


class Secp256k1:
    """secp256k1 scalar multiplication backed by ``cryptography``."""

    order = SECP256K1_ORDER

    def __init__(self) -> None:
        self._curve = ec.SECP256K1()

    def is_valid_private_key(self, private_key: bytes) -> bool:
        if len(private_key) != 32:
            return False
        return 0 < int.from_bytes(private_key, "big") < self.order

    def public_key(self, private_key: bytes) -> bytes:
        """Compressed (33-byte) public key for a 32-byte private key."""
        if not self.is_valid_private_key(private_key):
            raise CryptoError("Private key must be 32 bytes encoding an integer in [1, n-1].")
        key = ec.derive_private_key(int.from_bytes(private_key, "big"), self._curve)
        return key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.CompressedPoint,
        )


@dataclass(frozen=True)
class CryptoPrimitives:
    """Initialized hash and curve implementations."""
    sha256: Callable[[bytes], bytes]
    ripemd160: Callable[[bytes], bytes]
    hmac_sha512: Callable[[bytes, bytes], bytes]
    secp256k1: Secp256k1

    def hash160(self, data: bytes) -> bytes:
        return self.ripemd160(self.sha256(data))


def _init_sha256() -> Callable[[bytes], bytes]:
    if _sha256(b"").hex() != _SHA256_EMPTY:
        raise CryptoError("sha256 self-test failed.")
    return _sha256


def _init_ripemd160() -> Callable[[bytes], bytes]:
    try:
        digest = _ripemd160(b"").hex()
    except ValueError as e:
        raise CryptoError(f"ripemd160 is not available in this Python build: {e}") from e
    if digest != _RIPEMD160_EMPTY:
        raise CryptoError("ripemd160 self-test failed.")
    return _ripemd160


def _init_hmac_sha512() -> Callable[[bytes, bytes], bytes]:
    if len(_hmac_sha512(b"key", b"message")) != 64:
        raise CryptoError("hmac-sha512 self-test failed.")
    return _hmac_sha512


def _init_secp256k1() -> Secp256k1:
    curve = Secp256k1()
    if curve.public_key((1).to_bytes(32, "big")).hex() != _SECP256K1_G:
        raise CryptoError("secp256k1 self-test failed.")
    return curve


async def instantiate_primitives() -> CryptoPrimitives:
    """Initialize every primitive concurrently and join the results."""
    sha256, ripemd160, hmac_sha512, secp256k1 = await asyncio.gather(
        asyncio.to_thread(_init_sha256),
        asyncio.to_thread(_init_ripemd160),
        asyncio.to_thread(_init_hmac_sha512),
        asyncio.to_thread(_init_secp256k1),
    )
    logger.debug("Cryptographic primitives initialized")
    return CryptoPrimitives(
        sha256=sha256,
        ripemd160=ripemd160,
        hmac_sha512=hmac_sha512,
        secp256k1=secp256k1,
    )


def load_primitives() -> CryptoPrimitives:
    """Blocking wrapper around ``instantiate_primitives`` for synchronous callers."""
    return asyncio.run(instantiate_primitives())
