"""
Wallet provisioning pipeline.

    settings ──► resolve template / entity ──► classify ──► [validate] ──► generate ──► assemble

Each stage either advances or ends the run with a failed ``Outcome``; no
document exists until every stage has succeeded, so there is never partial
output to clean up. The pipeline does not read configuration, touch the
filesystem or exit the process: templates, randomness, primitives and
defaults are all passed in.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from bitauth.classifier import VariableClassification, classify_variables
from bitauth.core import now_iso8601, to_kebab_case
from bitauth.defaults import RESERVED_ALIASES
from bitauth.errors import CryptoError, InputError, Outcome, TemplateLookupError, ValidationError
from bitauth.hd import HdKeyMaterial, generate_hd_key_material, parse_derivation_path
from bitauth.keys import KeyPair, generate_flat_key_pairs, generate_messaging_key_if_needed
from bitauth.observability import BitauthLayer, get_logger, timed_operation
from bitauth.primitives import CryptoPrimitives, RandomSource
from bitauth.storage import TemplateRegistry
from bitauth.template import Entity, Template, parse_template
from bitauth.validation import CUSTOM_DATA_ADVISORY, verify_address_data_list, verify_record
from bitauth.wallet import (
    WalletProposal,
    WalletSecret,
    build_wallet_proposal,
    build_wallet_secret,
    build_wallet_share,
)

logger = get_logger("provision", BitauthLayer.PROVISION)

# A wallet alias names one directory under <data_dir>/wallets.
_ALIAS_PATTERN = re.compile(r"[A-Za-z0-9._-]+")


@dataclass
class CreationSettings:
    """Resolved settings for one ``wallet new`` run."""
    wallet_name: str
    entity_id: Optional[str] = None
    wallet_alias: Optional[str] = None
    template_alias: Optional[str] = None
    template: Optional[Dict[str, Any]] = None
    wallet_data: Any = None
    address_data: Any = None
    template_parameters: Optional[str] = None


@dataclass(frozen=True)
class ProvisioningDefaults:
    hd_public_key_derivation_path: str = "m"
    network: str = "mainnet"


@dataclass
class ProvisionedWallet:
    wallet_alias: str
    entity_id: str
    proposal: WalletProposal
    secret: WalletSecret
    advisories: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Resolved:
    template: Template
    template_alias: Optional[str]
    entity: Entity
    wallet_name: str
    wallet_alias: str


@dataclass(frozen=True)
class _Generated:
    key_pairs: Dict[str, KeyPair]
    hd_key: Optional[HdKeyMaterial]
    messaging_key: Optional[KeyPair]


def resolve_settings(settings: CreationSettings, registry: Optional[TemplateRegistry]) -> Outcome[_Resolved]:
    wallet_name = (settings.wallet_name or "").strip()
    if wallet_name == "":
        return Outcome.failure(InputError("Please provide a wallet name."))

    wallet_alias = settings.wallet_alias if settings.wallet_alias is not None else to_kebab_case(wallet_name)
    if wallet_alias == "":
        return Outcome.failure(InputError("An alias is required."))
    if not _ALIAS_PATTERN.fullmatch(wallet_alias) or wallet_alias in (".", ".."):
        return Outcome.failure(InputError(
            f'"{wallet_alias}" cannot be an alias: use only letters, digits, ".", "_" and "-".'
        ))
    if wallet_alias in RESERVED_ALIASES:
        return Outcome.failure(InputError(
            f'To avoid ambiguity, "{wallet_alias}" cannot be an alias, please choose a different alias.'
        ))

    if settings.template_parameters is not None:
        return Outcome.failure(InputError("Dynamic template parameters are not yet supported."))

    if settings.template_alias is not None and settings.template is not None:
        return Outcome.failure(InputError("Provide a template alias or a template, not both."))

    template: Optional[Template] = None
    if settings.template_alias is not None:
        if registry is None:
            return Outcome.failure(TemplateLookupError(
                f"A template with the alias '{settings.template_alias}' was not found in the current data directory."
            ))
        found = registry.lookup(settings.template_alias)
        if not found.ok:
            return found.propagate()
        template = found.unwrap().template
    elif settings.template is not None:
        parsed = parse_template(settings.template)
        if not parsed.ok:
            return Outcome.failure(InputError(f"The provided template is not valid: {parsed.error}"))
        template = parsed.unwrap()
    else:
        return Outcome.failure(InputError(
            "No template was provided. Please provide a template using either --template or --template-json."
        ))

    if settings.entity_id is None:
        return Outcome.failure(InputError(
            "No entity was provided. Please indicate the role to be performed by this wallet using --entity."
        ))
    entity = template.entities.get(settings.entity_id)
    if entity is None:
        return Outcome.failure(TemplateLookupError(
            f"An entity with an ID of {settings.entity_id} is not available in this template."
        ))

    return Outcome.success(_Resolved(
        template=template,
        template_alias=settings.template_alias,
        entity=entity,
        wallet_name=wallet_name,
        wallet_alias=wallet_alias,
    ))


def validate_custom_data(
    classification: VariableClassification,
    wallet_data: Any,
    address_data: Any,
) -> Outcome[Dict[str, Any]]:
    """Validate wallet/address data; skipped for kinds the entity does not declare.

    Both kinds are checked before reporting so every problem surfaces in one run.
    The custom data advisory accompanies the outcome whether or not it succeeds.
    """
    validated: Dict[str, Any] = {"wallet_data": None, "address_data": None}
    if not classification.requires_custom_data:
        return Outcome.success(validated)

    problems: List[str] = []
    if classification.wallet_data_ids:
        result = verify_record(wallet_data, classification.wallet_data_ids, context="wallet data")
        if result.ok:
            validated["wallet_data"] = result.unwrap()
        else:
            problems.extend(f"wallet data: {p}" for p in result.error.problems)  # type: ignore[union-attr]
    if classification.address_data_ids:
        result = verify_address_data_list(address_data, classification.address_data_ids)
        if result.ok:
            validated["address_data"] = result.unwrap()
        else:
            problems.extend(f"address data: {p}" for p in result.error.problems)  # type: ignore[union-attr]

    if problems:
        return Outcome.failure(
            ValidationError(problems, context="wallet variables"),
            warnings=[CUSTOM_DATA_ADVISORY],
        )
    return Outcome.success(validated, warnings=[CUSTOM_DATA_ADVISORY])


def generate_key_material(
    classification: VariableClassification,
    entity_count: int,
    random_source: RandomSource,
    primitives: CryptoPrimitives,
    network: str,
) -> Outcome[_Generated]:
    if classification.hd_key_requested:
        try:
            parse_derivation_path(classification.effective_hd_path)
        except CryptoError as e:
            return Outcome.failure(e)

    key_pairs = generate_flat_key_pairs(classification.key_ids, random_source, primitives)
    if not key_pairs.ok:
        return key_pairs.propagate()

    hd_key: Optional[HdKeyMaterial] = None
    if classification.hd_key_requested:
        hd = generate_hd_key_material(classification.effective_hd_path, random_source, primitives, network)
        if not hd.ok:
            return hd.propagate()
        hd_key = hd.unwrap()

    messaging = generate_messaging_key_if_needed(entity_count, random_source, primitives)
    if not messaging.ok:
        return messaging.propagate()

    return Outcome.success(_Generated(
        key_pairs=key_pairs.unwrap(),
        hd_key=hd_key,
        messaging_key=messaging.unwrap(),
    ))


@timed_operation(logger, "provision_wallet")
def provision_wallet(
    settings: CreationSettings,
    registry: Optional[TemplateRegistry],
    random_source: RandomSource,
    primitives: CryptoPrimitives,
    defaults: ProvisioningDefaults = ProvisioningDefaults(),
    clock: Callable[[], str] = now_iso8601,
) -> Outcome[ProvisionedWallet]:
    """Run the whole pipeline and return the proposal and secret documents."""
    resolved = resolve_settings(settings, registry)
    if not resolved.ok:
        return resolved.propagate()
    r = resolved.unwrap()
    logger.debug(
        "Resolved wallet settings",
        wallet_alias=r.wallet_alias,
        template_alias=r.template_alias,
        entity_id=r.entity.id,
    )

    classified = classify_variables(r.entity.variables, defaults.hd_public_key_derivation_path)
    if not classified.ok:
        return classified.propagate()
    classification = classified.unwrap()

    data = validate_custom_data(classification, settings.wallet_data, settings.address_data)
    for advisory in data.warnings:
        logger.warning(advisory, operation="custom_data_advisory")
    if not data.ok:
        return data.propagate()

    generated = generate_key_material(
        classification,
        r.template.entity_count,
        random_source,
        primitives,
        defaults.network,
    )
    if not generated.ok:
        return generated.propagate()
    g = generated.unwrap()

    share = build_wallet_share(
        created=clock(),
        key_pairs=g.key_pairs,
        template=r.template.raw,
        wallet_alias=r.wallet_alias,
        wallet_name=r.wallet_name,
        template_alias=r.template_alias,
        hd_key=g.hd_key,
        wallet_data=data.unwrap()["wallet_data"],
        address_data=data.unwrap()["address_data"],
    )
    proposal = build_wallet_proposal(r.entity.id, share, g.messaging_key)
    secret = build_wallet_secret(
        key_pairs=g.key_pairs,
        proposal=proposal,
        hd_key=g.hd_key,
        messaging_key=g.messaging_key,
    )
    logger.info(
        "Wallet provisioned",
        wallet_alias=r.wallet_alias,
        entity_id=r.entity.id,
        keys=sorted(g.key_pairs),
        hd_key=g.hd_key is not None,
        messaging_key=g.messaging_key is not None,
    )
    return Outcome.success(
        ProvisionedWallet(
            wallet_alias=r.wallet_alias,
            entity_id=r.entity.id,
            proposal=proposal,
            secret=secret,
            advisories=list(data.warnings),
        ),
        warnings=list(data.warnings),
    )
