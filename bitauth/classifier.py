"""Variable classification.

Partitions an entity's declared variables into the four kinds the pipeline
handles. The buckets are disjoint and together cover every declared
variable; any tag outside the four kinds fails the whole run before key
generation starts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from bitauth.errors import BitauthError, ConfigurationError, Outcome
from bitauth.observability import BitauthLayer, get_logger
from bitauth.template import Variable, VariableKind

logger = get_logger("classifier", BitauthLayer.PROVISION)


@dataclass(frozen=True)
class VariableClassification:
    """Result of classifying one entity's variables (declaration order)."""
    key_ids: Tuple[str, ...] = ()
    hd_key_requested: bool = False
    effective_hd_path: str = "m"
    hd_key_ids: Tuple[str, ...] = ()
    wallet_data_ids: Tuple[str, ...] = ()
    address_data_ids: Tuple[str, ...] = ()

    @property
    def requires_custom_data(self) -> bool:
        return bool(self.wallet_data_ids or self.address_data_ids)


@dataclass
class _Buckets:
    keys: List[str] = field(default_factory=list)
    hd_keys: List[str] = field(default_factory=list)
    wallet_data: List[str] = field(default_factory=list)
    address_data: List[str] = field(default_factory=list)
    path_overrides: Dict[str, str] = field(default_factory=dict)


def classify_variables(
    variables: Mapping[str, Variable],
    default_hd_path: str,
) -> Outcome[VariableClassification]:
    """Fold the declared variables into ordered buckets plus one HD path.

    Each entity gets at most one HD key. An ``HdKey`` variable with an
    explicit ``hdPublicKeyDerivationPath`` replaces ``default_hd_path``;
    explicit overrides that disagree with each other are a configuration
    error rather than being silently resolved.
    """
    buckets = _Buckets()
    try:
        for variable_id, variable in variables.items():
            kind = variable.kind
            if kind is VariableKind.KEY:
                buckets.keys.append(variable_id)
            elif kind is VariableKind.HD_KEY:
                buckets.hd_keys.append(variable_id)
                if variable.hd_public_key_derivation_path is not None:
                    buckets.path_overrides[variable_id] = variable.hd_public_key_derivation_path
            elif kind is VariableKind.WALLET_DATA:
                buckets.wallet_data.append(variable_id)
            else:
                buckets.address_data.append(variable_id)
    except BitauthError as e:
        logger.error("Variable classification failed", error_code=e.code)
        return Outcome.failure(e)

    distinct_paths = sorted(set(buckets.path_overrides.values()))
    if len(distinct_paths) > 1:
        described = ", ".join(f'"{vid}" ({path})' for vid, path in buckets.path_overrides.items())
        return Outcome.failure(ConfigurationError(
            "HdKey variables of a single entity must share one derivation path; "
            f"found conflicting hdPublicKeyDerivationPath values: {described}."
        ))
    effective_path = distinct_paths[0] if distinct_paths else default_hd_path

    classification = VariableClassification(
        key_ids=tuple(buckets.keys),
        hd_key_requested=bool(buckets.hd_keys),
        effective_hd_path=effective_path,
        hd_key_ids=tuple(buckets.hd_keys),
        wallet_data_ids=tuple(buckets.wallet_data),
        address_data_ids=tuple(buckets.address_data),
    )
    logger.debug(
        "Classified entity variables",
        keys=len(classification.key_ids),
        hd_keys=len(classification.hd_key_ids),
        wallet_data=list(classification.wallet_data_ids),
        address_data=list(classification.address_data_ids),
    )
    return Outcome.success(classification)
