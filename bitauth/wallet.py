"""Wallet share, proposal and secret documents.

The share and the proposal are meant to be exchanged with the other entities
of a template. The secret is the only document holding private material and
is never derived from, or merged into, a share.

Byte values are written as lowercase hex; optional fields are omitted from
the JSON form when absent.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from bitauth.core import canonical_json_bytes
from bitauth.hd import HdKeyMaterial
from bitauth.keys import KeyPair


@dataclass(frozen=True)
class WalletShare:
    """The non-secret part of one entity's new wallet."""
    created: str
    public_keys: Dict[str, str]
    template: Dict[str, Any]
    wallet_alias: str
    wallet_name: str
    template_alias: Optional[str] = None
    hd_public_key: Optional[str] = None
    wallet_data: Optional[Dict[str, str]] = None
    address_data: Optional[List[Dict[str, str]]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.address_data is not None:
            out["addressData"] = copy.deepcopy(self.address_data)
        out["created"] = self.created
        if self.hd_public_key is not None:
            out["hdPublicKey"] = self.hd_public_key
        out["publicKeys"] = dict(self.public_keys)
        out["template"] = copy.deepcopy(self.template)
        if self.template_alias is not None:
            out["templateAlias"] = self.template_alias
        out["walletAlias"] = self.wallet_alias
        out["walletName"] = self.wallet_name
        if self.wallet_data is not None:
            out["walletData"] = dict(self.wallet_data)
        return out


@dataclass(frozen=True)
class WalletProposal:
    wallet_shares: Dict[str, WalletShare]
    messaging_keys: Optional[Dict[str, str]] = None
    share_signatures: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.messaging_keys is not None:
            out["messagingKeys"] = dict(self.messaging_keys)
        out["shareSignatures"] = dict(self.share_signatures)
        out["walletShares"] = {eid: share.to_dict() for eid, share in self.wallet_shares.items()}
        return out


@dataclass(frozen=True)
class HdPrivateKey:
    private: str
    seed: str


@dataclass(frozen=True)
class WalletSecret:
    private_keys: Dict[str, str]
    proposal: Dict[str, Any]
    hd_key: Optional[HdPrivateKey] = None
    messaging_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        private_data: Dict[str, Any] = {}
        if self.hd_key is not None:
            private_data["hdKey"] = {"private": self.hd_key.private, "seed": self.hd_key.seed}
        if self.messaging_key is not None:
            private_data["messagingKey"] = self.messaging_key
        private_data["privateKeys"] = dict(self.private_keys)
        return {"privateData": private_data, "proposal": copy.deepcopy(self.proposal)}


def build_wallet_share(
    *,
    created: str,
    key_pairs: Mapping[str, KeyPair],
    template: Mapping[str, Any],
    wallet_alias: str,
    wallet_name: str,
    template_alias: Optional[str] = None,
    hd_key: Optional[HdKeyMaterial] = None,
    wallet_data: Optional[Dict[str, str]] = None,
    address_data: Optional[List[Dict[str, str]]] = None,
) -> WalletShare:
    return WalletShare(
        created=created,
        public_keys={kid: pair.public_key.hex() for kid, pair in key_pairs.items()},
        template=copy.deepcopy(dict(template)),
        wallet_alias=wallet_alias,
        wallet_name=wallet_name,
        template_alias=template_alias,
        hd_public_key=hd_key.derived_public_key if hd_key is not None else None,
        wallet_data=wallet_data,
        address_data=address_data,
    )


def share_signing_preimage(share: WalletShare) -> bytes:
    """Canonical bytes of a share: the message future share signatures cover."""
    return canonical_json_bytes(share.to_dict())


def build_wallet_proposal(
    entity_id: str,
    share: WalletShare,
    messaging_key: Optional[KeyPair] = None,
) -> WalletProposal:
    messaging_keys = None
    if messaging_key is not None:
        messaging_keys = {entity_id: messaging_key.public_key.hex()}
    return WalletProposal(wallet_shares={entity_id: share}, messaging_keys=messaging_keys)


def build_wallet_secret(
    *,
    key_pairs: Mapping[str, KeyPair],
    proposal: WalletProposal,
    hd_key: Optional[HdKeyMaterial] = None,
    messaging_key: Optional[KeyPair] = None,
) -> WalletSecret:
    return WalletSecret(
        private_keys={kid: pair.private_key.hex() for kid, pair in key_pairs.items()},
        proposal=proposal.to_dict(),
        hd_key=(
            HdPrivateKey(private=hd_key.master_private_key, seed=hd_key.seed.hex())
            if hd_key is not None else None
        ),
        messaging_key=messaging_key.private_key.hex() if messaging_key is not None else None,
    )
