"""Tests for BIP32 derivation and extended key encoding (BIP32 test vector 1)."""

import pytest

from bitauth.errors import CryptoError
from bitauth.hd import (
    HARDENED_OFFSET,
    SEED_LENGTH,
    b58encode,
    derive_path,
    encode_private_node,
    encode_public_node,
    generate_hd_key_material,
    hd_key_material_from_seed,
    master_node_from_seed,
    parse_derivation_path,
)

SEED = bytes.fromhex("000102030405060708090a0b0c0d0e0f")

MASTER_XPRV = "xprv9s21ZrQH143K3QTDL4LXw2F7HEK3wJUD2nW2nRk4stbPy6cq3jPPqjiChkVvvNKmPGJxWUtg6LnF5kejMRNNU3TGtRBeJgk33yuGBxrMPHi"
MASTER_XPUB = "xpub661MyMwAqRbcFtXgS5sYJABqqG9YLmC4Q1Rdap9gSE8NqtwybGhePY2gZ29ESFjqJoCu1Rupje8YtGqsefD265TMg7usUDFdp6W1EGMcet8"
XPUB_0H = "xpub68Gmy5EdvgibQVfPdqkBBCHxA5htiqg55crXYuXoQRKfDBFA1WEjWgP6LHhwBZeNK1VTsfTFUHCdrfp1bgwQ9xv5ski8PX9rL2dZXvgGDnw"
XPUB_0H_1 = "xpub6ASuArnXKPbfEwhqN6e3mwBcDTgzisQN1wXN9BJcM47sSikHjJf3UFHKkNAWbWMiGj7Wf5uMash7SyYq527Hqck2AxYysAA7xmALppuCkwQ"
XPUB_DEEP = "xpub6H1LXWLaKsWFhvm6RVpEL9P4KfRZSW7abD2ttkWP3SSQvnyA8FSVqNTEcYFgJS2UaFcxupHiYkro49S8yGasTvXEYBVPamhGW6cFJodrTHy"


class TestDerivationPath:

    @pytest.mark.parametrize("path,indices", [
        ("m", []),
        ("m/0", [0]),
        ("m/0'", [HARDENED_OFFSET]),
        ("m/0h/1H/2'", [HARDENED_OFFSET, HARDENED_OFFSET + 1, HARDENED_OFFSET + 2]),
        ("m/2147483647", [2147483647]),
    ])
    def test_parse(self, path, indices):
        assert parse_derivation_path(path) == indices

    @pytest.mark.parametrize("path", ["", "M", "n/0", "m/", "m//1", "m/-1", "m/a", "m/1''", "m/2147483648", "0/1"])
    def test_rejects(self, path):
        with pytest.raises(CryptoError):
            parse_derivation_path(path)


class TestVectorOne:

    def test_master(self, primitives):
        master = master_node_from_seed(SEED, primitives)
        assert encode_private_node(master, primitives) == MASTER_XPRV
        assert encode_public_node(master, primitives) == MASTER_XPUB

    @pytest.mark.parametrize("path,xpub", [
        ("m", MASTER_XPUB),
        ("m/0H", XPUB_0H),
        ("m/0'/1", XPUB_0H_1),
        ("m/0h/1/2h/2/1000000000", XPUB_DEEP),
    ])
    def test_derived_public_keys(self, primitives, path, xpub):
        master = master_node_from_seed(SEED, primitives)
        assert encode_public_node(derive_path(master, path, primitives), primitives) == xpub

    def test_material_from_seed(self, primitives):
        material = hd_key_material_from_seed(SEED, "m/0'", primitives)
        assert material.master_private_key == MASTER_XPRV
        assert material.derived_public_key == XPUB_0H
        assert MASTER_XPRV not in repr(material)

    def test_testnet_prefixes(self, primitives):
        material = hd_key_material_from_seed(SEED, "m", primitives, network="testnet")
        assert material.master_private_key.startswith("tprv")
        assert material.derived_public_key.startswith("tpub")


class TestGenerateHdKeyMaterial:

    def test_draws_one_seed(self, primitives, random_source):
        material = generate_hd_key_material("m/44'/145'/0'", random_source, primitives).unwrap()
        assert random_source.requests == [SEED_LENGTH]
        assert len(material.seed) == SEED_LENGTH
        assert material.derivation_path == "m/44'/145'/0'"
        assert material.master_private_key.startswith("xprv")
        assert material.derived_public_key.startswith("xpub")

    def test_bad_path_consumes_no_randomness(self, primitives, random_source):
        outcome = generate_hd_key_material("m/x", random_source, primitives)
        assert not outcome.ok
        assert isinstance(outcome.error, CryptoError)
        assert random_source.requests == []

    def test_unknown_network(self, primitives, random_source):
        outcome = generate_hd_key_material("m", random_source, primitives, network="regtest")
        assert not outcome.ok
        assert random_source.requests == []

    def test_short_seed(self, primitives):
        outcome = generate_hd_key_material("m", lambda n: bytes(16), primitives)
        assert not outcome.ok
        assert "expected 64" in outcome.error.message


class TestBase58:

    def test_leading_zeros(self):
        assert b58encode(b"\x00\x00\x01") == "112"
        assert b58encode(b"") == ""
