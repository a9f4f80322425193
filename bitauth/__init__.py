"""
bitauth: wallet provisioning from authentication templates

An authentication template declares the entities (roles) of a wallet and the
variables each entity must supply. ``bitauth`` creates the wallet of one
entity: it generates the entity's keys, validates any custom data, and writes
a shareable wallet proposal next to the wallet secret.

Architecture
────────────

    ┌──────────────────────────────────────────────────────────────────┐
    │  COMMAND LINE                                                    │
    │    cli.py          argparse front end, exit codes, output        │
    │                                                                  │
    │  PROVISIONING                                                    │
    │    provision.py    settings → template → classify → generate     │
    │    classifier.py   variable kinds and the effective HD path      │
    │    validation.py   wallet data / address data records            │
    │    wallet.py       share, proposal and secret documents          │
    │                                                                  │
    │  KEY MATERIAL                                                    │
    │    primitives.py   hashes, HMAC and secp256k1, self-tested       │
    │    keys.py         flat key pairs and the messaging key          │
    │    hd.py           BIP32 seeds, derivation and extended keys     │
    │                                                                  │
    │  FOUNDATION                                                      │
    │    template.py     template data model                           │
    │    storage.py      data directory, template registry, wallets    │
    │    config.py       YAML + environment configuration              │
    │    observability.py structured logging                           │
    │    errors.py       error taxonomy and stage outcomes             │
    │    core.py         canonical JSON and small helpers              │
    └──────────────────────────────────────────────────────────────────┘

Quick start::

    from bitauth import CreationSettings, TemplateRegistry, provision_wallet
    from bitauth.primitives import load_primitives, secure_random_bytes
    from bitauth.storage import DataDirectory

    data_dir = DataDirectory("~/.bitauth").ensure()
    outcome = provision_wallet(
        CreationSettings(wallet_name="Personal", template_alias="p2pkh", entity_id="owner"),
        TemplateRegistry.load(data_dir),
        secure_random_bytes,
        load_primitives(),
    )
"""

__version__ = "0.1.0"


# Lazy imports keep ``import bitauth`` cheap for the command line
def __getattr__(name):
    """Lazy import bitauth modules on first access."""

    if name in ("BitauthError", "ConfigurationError", "TemplateLookupError", "InputError",
                "ValidationError", "CryptoError", "StorageError", "Outcome"):
        from bitauth import errors
        return getattr(errors, name)

    if name in ("Template", "Entity", "Variable", "VariableKind", "parse_template"):
        from bitauth import template
        return getattr(template, name)

    if name in ("CreationSettings", "ProvisioningDefaults", "ProvisionedWallet", "provision_wallet"):
        from bitauth import provision
        return getattr(provision, name)

    if name in ("WalletShare", "WalletProposal", "WalletSecret", "share_signing_preimage"):
        from bitauth import wallet
        return getattr(wallet, name)

    if name in ("DataDirectory", "TemplateRegistry", "write_wallet"):
        from bitauth import storage
        return getattr(storage, name)

    raise AttributeError(f"module 'bitauth' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Errors
    "BitauthError",
    "ConfigurationError",
    "TemplateLookupError",
    "InputError",
    "ValidationError",
    "CryptoError",
    "StorageError",
    "Outcome",
    # Templates
    "Template",
    "Entity",
    "Variable",
    "VariableKind",
    "parse_template",
    # Provisioning
    "CreationSettings",
    "ProvisioningDefaults",
    "ProvisionedWallet",
    "provision_wallet",
    # Documents
    "WalletShare",
    "WalletProposal",
    "WalletSecret",
    "share_signing_preimage",
    # Storage
    "DataDirectory",
    "TemplateRegistry",
    "write_wallet",
]
