"""Templates bundled with bitauth and the data directory readme.

These are re-written into ``<data_dir>/templates/`` whenever they are missing
or have been modified.
"""

from __future__ import annotations

from typing import Any, Dict

DEFAULT_TEMPLATE_P2PKH = "p2pkh"
DEFAULT_TEMPLATE_TWO_OF_THREE = "2-of-3"
DEFAULT_TEMPLATE_TWO_OF_TWO_RECOVERABLE = "2-of-2-recoverable"

SCHEMA_URL = "https://bitauth.com/schemas/authentication-template-v0.schema.json"
SUPPORTED_VMS = ["BCH_2019_05", "BCH_2019_11", "BCH_2020_05"]

P2PKH: Dict[str, Any] = {
    "$schema": SCHEMA_URL,
    "description": (
        "A standard single-factor authentication template which uses "
        "Pay-to-Public-Key-Hash (P2PKH).\n\n"
        "This is currently the most common template in use on the network."
    ),
    "entities": {
        "owner": {
            "description": "The individual who can spend from this wallet.",
            "name": "Owner",
            "scripts": ["lock", "unlock"],
            "variables": {
                "key": {
                    "description": "The private key which controls this wallet.",
                    "name": "Key",
                    "type": "HdKey",
                },
            },
        },
    },
    "name": "Single Signature (P2PKH)",
    "scripts": {
        "lock": {
            "lockingType": "standard",
            "name": "P2PKH Lock",
            "script": "OP_DUP\nOP_HASH160 <$(<key.public_key> OP_HASH160\n)> OP_EQUALVERIFY\nOP_CHECKSIG",
        },
        "unlock": {
            "name": "Unlock",
            "script": "<key.schnorr_signature.all_outputs>\n<key.public_key>",
            "unlocks": "lock",
        },
    },
    "supported": SUPPORTED_VMS,
    "version": 0,
}


def _signer(number: int, variable: str, variable_type: str = "Key") -> Dict[str, Any]:
    return {
        "description": "One of the three co-owners of this wallet.",
        "name": f"Signer {number}",
        "scripts": ["lock", "1_and_2", "1_and_3", "2_and_3"],
        "variables": {
            variable: {
                "description": f"The private key held by signer {number}.",
                "name": f"Key {number}",
                "type": variable_type,
            },
        },
    }


TWO_OF_THREE: Dict[str, Any] = {
    "$schema": SCHEMA_URL,
    "description": (
        "A 2-of-3 P2SH multisig wallet. Any two of the three signers can "
        "spend funds together."
    ),
    "entities": {
        "signer_1": _signer(1, "key1"),
        "signer_2": _signer(2, "key2"),
        "signer_3": _signer(3, "key3"),
    },
    "name": "2-of-3 Multi-Signature",
    "scripts": {
        "lock": {
            "lockingType": "p2sh",
            "name": "2-of-3 Vault",
            "script": "OP_2\n<key1.public_key>\n<key2.public_key>\n<key3.public_key>\nOP_3\nOP_CHECKMULTISIG",
        },
        "1_and_2": {
            "name": "Signers 1 & 2",
            "script": "OP_0\n<key1.signature.all_outputs>\n<key2.signature.all_outputs>",
            "unlocks": "lock",
        },
        "1_and_3": {
            "name": "Signers 1 & 3",
            "script": "OP_0\n<key1.signature.all_outputs>\n<key3.signature.all_outputs>",
            "unlocks": "lock",
        },
        "2_and_3": {
            "name": "Signers 2 & 3",
            "script": "OP_0\n<key2.signature.all_outputs>\n<key3.signature.all_outputs>",
            "unlocks": "lock",
        },
    },
    "supported": SUPPORTED_VMS,
    "version": 0,
}

TWO_OF_TWO_RECOVERABLE: Dict[str, Any] = {
    "$schema": SCHEMA_URL,
    "description": (
        "A 2-of-2 wallet which can be recovered by a trusted party after a delay.\n\n"
        "Both signers must sign to spend normally. If either signer is unavailable, "
        "the remaining signer and the trusted party can spend once the funds have "
        "been unmoved for the configured delay."
    ),
    "entities": {
        "signer_1": {
            "description": "The first co-owner of this wallet.",
            "name": "Signer 1",
            "scripts": ["lock", "spend", "recover_1"],
            "variables": {
                "first": {
                    "description": "The HD key of signer 1.",
                    "name": "Signer 1 Key",
                    "type": "HdKey",
                },
                "delay_seconds": {
                    "description": (
                        "The number of seconds after which the trusted party can help "
                        "recover funds (e.g. 2592000 for 30 days)."
                    ),
                    "name": "Recovery Delay (Seconds)",
                    "type": "WalletData",
                },
            },
        },
        "signer_2": {
            "description": "The second co-owner of this wallet.",
            "name": "Signer 2",
            "scripts": ["lock", "spend", "recover_2"],
            "variables": {
                "second": {
                    "description": "The HD key of signer 2.",
                    "name": "Signer 2 Key",
                    "type": "HdKey",
                },
            },
        },
        "trusted_party": {
            "description": "A trusted party who can help either signer recover funds after the delay.",
            "name": "Trusted Party",
            "scripts": ["lock", "recover_1", "recover_2"],
            "variables": {
                "trusted": {
                    "description": "The HD key of the trusted party.",
                    "name": "Trusted Party Key",
                    "type": "HdKey",
                },
            },
        },
    },
    "name": "2-of-2 Recoverable Vault",
    "scripts": {
        "lock": {
            "lockingType": "p2sh",
            "name": "Vault",
            "script": (
                "OP_IF\n  <$(<delay_seconds> OP_NUM2BIN)> OP_CHECKSEQUENCEVERIFY OP_DROP\n"
                "  <trusted.public_key> OP_CHECKSIGVERIFY <1>\nOP_ELSE\n  <2>\nOP_ENDIF\n"
                "<first.public_key> <second.public_key> <2> OP_CHECKMULTISIG"
            ),
        },
        "spend": {
            "name": "Standard Spend",
            "script": "OP_0\n<first.signature.all_outputs>\n<second.signature.all_outputs>\nOP_0",
            "unlocks": "lock",
        },
        "recover_1": {
            "name": "Recover with Signer 1",
            "script": "OP_0\n<first.signature.all_outputs>\n<trusted.signature.all_outputs>\nOP_1",
            "unlocks": "lock",
        },
        "recover_2": {
            "name": "Recover with Signer 2",
            "script": "OP_0\n<second.signature.all_outputs>\n<trusted.signature.all_outputs>\nOP_1",
            "unlocks": "lock",
        },
    },
    "supported": SUPPORTED_VMS,
    "version": 0,
}

DEFAULT_TEMPLATES: Dict[str, Dict[str, Any]] = {
    DEFAULT_TEMPLATE_P2PKH: P2PKH,
    DEFAULT_TEMPLATE_TWO_OF_THREE: TWO_OF_THREE,
    DEFAULT_TEMPLATE_TWO_OF_TWO_RECOVERABLE: TWO_OF_TWO_RECOVERABLE,
}

RESERVED_ALIASES = (
    "config",
    "create",
    "group",
    "groups",
    "help",
    "id",
    "list",
    "profile",
    "new",
    "tx",
    "verify",
    "wallet",
)

DATA_DIR_README = """# Bitauth Data Directory

This directory is managed by the bitauth command line.

- `templates/` holds authentication templates, one JSON file per template.
  The file name (without `.json`) is the alias used with `--template`.
  Bundled templates are restored automatically if they are removed or edited.
- `wallets/` holds one directory per wallet alias:
  - `wallet-proposal.json` can be shared with the other entities of the wallet.
  - `wallet-secret.json` contains private keys. Never share it.
- `logs--sensitive-do-not-share.ndjson` records every command run. It may
  contain sensitive information; do not share it.
"""
