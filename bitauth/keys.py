"""Flat (non-HD) key generation.

Every ``Key`` variable gets a fresh secp256k1 key pair drawn from the injected
randomness source. When a template declares more than one entity, the wallet
also gets a messaging key pair used to communicate with the other entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from bitauth.errors import CryptoError, Outcome
from bitauth.observability import BitauthLayer, get_logger
from bitauth.primitives import CryptoPrimitives, RandomSource

logger = get_logger("keys", BitauthLayer.CRYPTO)

PRIVATE_KEY_LENGTH = 32
MESSAGING_KEY_ID = "messaging"


@dataclass(frozen=True)
class KeyPair:
    id: str
    private_key: bytes
    public_key: bytes

    def __repr__(self) -> str:
        return f"KeyPair(id={self.id!r}, public_key={self.public_key.hex()!r})"


def derive_public_key(private_key: bytes, primitives: CryptoPrimitives) -> bytes:
    """Compressed public key for ``private_key``; depends on nothing else."""
    return primitives.secp256k1.public_key(private_key)


def generate_flat_key_pair(
    key_id: str,
    random_source: RandomSource,
    primitives: CryptoPrimitives,
) -> Outcome[KeyPair]:
    private_key = random_source(PRIVATE_KEY_LENGTH)
    if len(private_key) != PRIVATE_KEY_LENGTH:
        return Outcome.failure(CryptoError(
            f"Randomness source returned {len(private_key)} bytes, expected {PRIVATE_KEY_LENGTH}."
        ))
    try:
        public_key = derive_public_key(private_key, primitives)
    except CryptoError as e:
        return Outcome.failure(CryptoError(f'Cannot generate key "{key_id}": {e.message}'))
    logger.trace("Generated key pair", key_id=key_id, public_key=public_key.hex())
    return Outcome.success(KeyPair(id=key_id, private_key=private_key, public_key=public_key))


def generate_flat_key_pairs(
    key_ids: Iterable[str],
    random_source: RandomSource,
    primitives: CryptoPrimitives,
) -> Outcome[Dict[str, KeyPair]]:
    """Generate one key pair per id, stopping at the first failure."""
    pairs: Dict[str, KeyPair] = {}
    for key_id in key_ids:
        result = generate_flat_key_pair(key_id, random_source, primitives)
        if not result.ok:
            return result.propagate()
        pairs[key_id] = result.unwrap()
    return Outcome.success(pairs)


def generate_messaging_key_if_needed(
    entity_count: int,
    random_source: RandomSource,
    primitives: CryptoPrimitives,
) -> Outcome[Optional[KeyPair]]:
    """One extra key pair when the template has more than one entity.

    The decision depends only on the template, not on the selected entity.
    """
    if entity_count <= 1:
        return Outcome.success(None)
    return generate_flat_key_pair(MESSAGING_KEY_ID, random_source, primitives)
