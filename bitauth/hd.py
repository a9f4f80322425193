"""Hierarchical deterministic (BIP32) key material.

Invariants:
- Seeds are 64 random bytes; the master node is HMAC-SHA512("Bitcoin seed", seed).
- Derivation happens from the private master node; the public extended key is
  encoded from the node at the end of the path.
- Extended keys use the standard 78-byte serialization, base58check encoded
  with the version bytes of the configured network.
- Any malformed or underivable path is a terminal ``CryptoError``; child
  indices are never skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from bitauth.errors import CryptoError, Outcome
from bitauth.observability import BitauthLayer, get_logger
from bitauth.primitives import CryptoPrimitives, RandomSource

logger = get_logger("hd", BitauthLayer.CRYPTO)

SEED_LENGTH = 64
HARDENED_OFFSET = 0x80000000
MASTER_HMAC_KEY = b"Bitcoin seed"

# network -> (private version, public version)
NETWORK_VERSIONS: Dict[str, Tuple[bytes, bytes]] = {
    "mainnet": (bytes.fromhex("0488ade4"), bytes.fromhex("0488b21e")),
    "testnet": (bytes.fromhex("04358394"), bytes.fromhex("043587cf")),
}

_PATH_SEGMENT_RE = re.compile(r"^(\d+)(['hH]?)$")

B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def b58encode(b: bytes) -> str:
    # Count leading zeros
    n_pad = 0
    for c in b:
        if c == 0:
            n_pad += 1
        else:
            break
    num = int.from_bytes(b, "big")
    out = bytearray()
    while num > 0:
        num, rem = divmod(num, 58)
        out.append(B58_ALPHABET[rem])
    out.extend(B58_ALPHABET[0] for _ in range(n_pad))
    out.reverse()
    return out.decode("ascii")


def b58check_encode(payload: bytes, primitives: CryptoPrimitives) -> str:
    checksum = primitives.sha256(primitives.sha256(payload))[:4]
    return b58encode(payload + checksum)


@dataclass(frozen=True)
class HdNode:
    """A private BIP32 node."""
    private_key: bytes
    chain_code: bytes
    depth: int = 0
    parent_fingerprint: bytes = b"\x00\x00\x00\x00"
    child_number: int = 0

    def __repr__(self) -> str:
        return f"HdNode(depth={self.depth}, child_number={self.child_number})"


@dataclass(frozen=True)
class HdKeyMaterial:
    seed: bytes
    derivation_path: str
    master_private_key: str
    derived_public_key: str

    def __repr__(self) -> str:
        return f"HdKeyMaterial(derivation_path={self.derivation_path!r}, derived_public_key={self.derived_public_key!r})"


def parse_derivation_path(path: str) -> List[int]:
    """Parse ``m/44'/0h/1`` into child indices (hardened ones offset by 2^31)."""
    if not isinstance(path, str):
        raise CryptoError(f"Derivation path must be a string, got {type(path).__name__}.")
    segments = path.split("/")
    if segments[0] != "m":
        raise CryptoError(f'Derivation path must start with "m": "{path}".')
    indices: List[int] = []
    for segment in segments[1:]:
        match = _PATH_SEGMENT_RE.match(segment)
        if match is None:
            raise CryptoError(f'Invalid derivation path segment "{segment}" in "{path}".')
        index = int(match.group(1))
        if index >= HARDENED_OFFSET:
            raise CryptoError(f'Derivation path index {index} out of range in "{path}".')
        if match.group(2):
            index += HARDENED_OFFSET
        indices.append(index)
    return indices


def master_node_from_seed(seed: bytes, primitives: CryptoPrimitives) -> HdNode:
    digest = primitives.hmac_sha512(MASTER_HMAC_KEY, seed)
    private_key, chain_code = digest[:32], digest[32:]
    if not primitives.secp256k1.is_valid_private_key(private_key):
        raise CryptoError("Seed produces an invalid master key.")
    return HdNode(private_key=private_key, chain_code=chain_code)


def derive_child(node: HdNode, index: int, primitives: CryptoPrimitives) -> HdNode:
    curve = primitives.secp256k1
    parent_public = curve.public_key(node.private_key)
    if index >= HARDENED_OFFSET:
        data = b"\x00" + node.private_key + index.to_bytes(4, "big")
    else:
        data = parent_public + index.to_bytes(4, "big")
    digest = primitives.hmac_sha512(node.chain_code, data)
    tweak = int.from_bytes(digest[:32], "big")
    child = (tweak + int.from_bytes(node.private_key, "big")) % curve.order
    if tweak >= curve.order or child == 0:
        raise CryptoError(f"Child index {index} is not derivable from this node.")
    return HdNode(
        private_key=child.to_bytes(32, "big"),
        chain_code=digest[32:],
        depth=node.depth + 1,
        parent_fingerprint=primitives.hash160(parent_public)[:4],
        child_number=index,
    )


def derive_path(node: HdNode, path: str, primitives: CryptoPrimitives) -> HdNode:
    for index in parse_derivation_path(path):
        if node.depth >= 255:
            raise CryptoError(f'Derivation path is too deep: "{path}".')
        node = derive_child(node, index, primitives)
    return node


def _serialize(node: HdNode, version: bytes, key_data: bytes) -> bytes:
    return (
        version
        + bytes([node.depth])
        + node.parent_fingerprint
        + node.child_number.to_bytes(4, "big")
        + node.chain_code
        + key_data
    )


def _versions(network: str) -> Tuple[bytes, bytes]:
    try:
        return NETWORK_VERSIONS[network]
    except KeyError:
        raise CryptoError(f'Unknown network "{network}".') from None


def encode_private_node(node: HdNode, primitives: CryptoPrimitives, network: str = "mainnet") -> str:
    private_version, _ = _versions(network)
    return b58check_encode(_serialize(node, private_version, b"\x00" + node.private_key), primitives)


def encode_public_node(node: HdNode, primitives: CryptoPrimitives, network: str = "mainnet") -> str:
    _, public_version = _versions(network)
    public_key = primitives.secp256k1.public_key(node.private_key)
    return b58check_encode(_serialize(node, public_version, public_key), primitives)


def hd_key_material_from_seed(
    seed: bytes,
    path: str,
    primitives: CryptoPrimitives,
    network: str = "mainnet",
) -> HdKeyMaterial:
    """Deterministic part of HD generation; raises ``CryptoError``."""
    master = master_node_from_seed(seed, primitives)
    derived = derive_path(master, path, primitives)
    return HdKeyMaterial(
        seed=seed,
        derivation_path=path,
        master_private_key=encode_private_node(master, primitives, network),
        derived_public_key=encode_public_node(derived, primitives, network),
    )


def generate_hd_key_material(
    path: str,
    random_source: RandomSource,
    primitives: CryptoPrimitives,
    network: str = "mainnet",
) -> Outcome[HdKeyMaterial]:
    # validate the path before consuming randomness
    try:
        parse_derivation_path(path)
        _versions(network)
    except CryptoError as e:
        return Outcome.failure(e)

    seed = random_source(SEED_LENGTH)
    if len(seed) != SEED_LENGTH:
        return Outcome.failure(CryptoError(
            f"Randomness source returned {len(seed)} bytes, expected {SEED_LENGTH}."
        ))
    try:
        material = hd_key_material_from_seed(seed, path, primitives, network)
    except CryptoError as e:
        logger.error("HD key derivation failed", error_code=e.code, path=path)
        return Outcome.failure(e)
    logger.debug("Generated HD key", path=path, network=network)
    return Outcome.success(material)
