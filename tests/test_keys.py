"""Tests for primitives and flat key generation."""

import asyncio

import pytest

from bitauth.errors import CryptoError
from bitauth.keys import (
    MESSAGING_KEY_ID,
    derive_public_key,
    generate_flat_key_pair,
    generate_flat_key_pairs,
    generate_messaging_key_if_needed,
)
from bitauth.primitives import SECP256K1_ORDER, instantiate_primitives, secure_random_bytes

GENERATOR_POINT = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


def _fixed(value: bytes):
    def source(n):
        assert n == len(value)
        return value
    return source


class TestPrimitives:

    def test_instantiate_concurrently(self):
        primitives = asyncio.run(instantiate_primitives())
        assert primitives.sha256(b"abc").hex().startswith("ba7816bf")
        assert primitives.hash160(b"").hex() == "b472a266d0bd89c13706a4132ccfb16f7c3b9fcb"
        assert len(primitives.hmac_sha512(b"k", b"m")) == 64

    def test_secure_random_bytes(self):
        assert len(secure_random_bytes(32)) == 32
        assert secure_random_bytes(32) != secure_random_bytes(32)

    def test_private_key_range(self, primitives):
        curve = primitives.secp256k1
        assert not curve.is_valid_private_key(bytes(32))
        assert not curve.is_valid_private_key(SECP256K1_ORDER.to_bytes(32, "big"))
        assert curve.is_valid_private_key((SECP256K1_ORDER - 1).to_bytes(32, "big"))
        assert not curve.is_valid_private_key(b"\x01")


class TestFlatKeys:

    def test_private_key_one_is_generator(self, primitives):
        pair = generate_flat_key_pair("key", _fixed((1).to_bytes(32, "big")), primitives).unwrap()
        assert pair.public_key.hex() == GENERATOR_POINT
        assert derive_public_key(pair.private_key, primitives) == pair.public_key

    def test_repr_hides_private_key(self, primitives):
        pair = generate_flat_key_pair("key", _fixed((1).to_bytes(32, "big")), primitives).unwrap()
        assert pair.private_key.hex() not in repr(pair)

    def test_deterministic_for_same_randomness(self, primitives, random_factory):
        a = generate_flat_key_pairs(["k1", "k2"], random_factory(), primitives).unwrap()
        b = generate_flat_key_pairs(["k1", "k2"], random_factory(), primitives).unwrap()
        assert list(a) == ["k1", "k2"]
        assert a["k1"].public_key == b["k1"].public_key
        assert a["k1"].private_key != a["k2"].private_key
        assert all(len(p.public_key) == 33 for p in a.values())

    def test_invalid_private_key(self, primitives):
        outcome = generate_flat_key_pair("key", _fixed(bytes(32)), primitives)
        assert not outcome.ok
        assert isinstance(outcome.error, CryptoError)
        assert '"key"' in outcome.error.message

    def test_short_randomness(self, primitives):
        outcome = generate_flat_key_pair("key", lambda n: b"\x01" * 16, primitives)
        assert not outcome.ok
        assert "expected 32" in outcome.error.message

    def test_stops_at_first_failure(self, primitives):
        draws = []

        def source(n):
            draws.append(n)
            return bytes(32)

        outcome = generate_flat_key_pairs(["a", "b"], source, primitives)
        assert not outcome.ok
        assert draws == [32]

    def test_curve_rejects_out_of_range(self, primitives):
        with pytest.raises(CryptoError):
            primitives.secp256k1.public_key(SECP256K1_ORDER.to_bytes(32, "big"))


class TestMessagingKey:

    def test_single_entity_has_none(self, primitives, random_source):
        assert generate_messaging_key_if_needed(1, random_source, primitives).unwrap() is None
        assert random_source.requests == []

    def test_multiple_entities(self, primitives, random_source):
        pair = generate_messaging_key_if_needed(3, random_source, primitives).unwrap()
        assert pair.id == MESSAGING_KEY_ID
        assert random_source.requests == [32]
