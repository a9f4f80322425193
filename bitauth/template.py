"""Authentication template data model.

A template is a JSON document declaring entities (roles) and the variables
each entity must provide. Only the parts needed for wallet provisioning are
modelled; everything else (scripts, scenarios, supported VMs) is kept in
``Template.raw`` and travels verbatim into the wallet share.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from bitauth.errors import ConfigurationError, Outcome
from bitauth.schema import validate_template_document


class VariableKind(Enum):
    """Variable tags understood by the provisioning pipeline."""
    KEY = "Key"
    HD_KEY = "HdKey"
    WALLET_DATA = "WalletData"
    ADDRESS_DATA = "AddressData"


@dataclass(frozen=True)
class Variable:
    """A single declared variable, tagged by ``type``."""
    id: str
    type: str
    name: Optional[str] = None
    description: Optional[str] = None
    hd_public_key_derivation_path: Optional[str] = None

    @property
    def kind(self) -> VariableKind:
        try:
            return VariableKind(self.type)
        except ValueError:
            raise ConfigurationError(
                f'The provided template requires an unknown variable type: "{self.type}" '
                f'(variable "{self.id}").'
            ) from None


@dataclass(frozen=True)
class Entity:
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    variables: Dict[str, Variable] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name if self.name is not None else f"Unnamed ({self.id})"


@dataclass(frozen=True)
class Template:
    entities: Dict[str, Entity]
    raw: Dict[str, Any]
    name: Optional[str] = None
    description: Optional[str] = None

    @property
    def entity_count(self) -> int:
        return len(self.entities)


def _build_variable(variable_id: str, obj: Dict[str, Any]) -> Variable:
    return Variable(
        id=variable_id,
        type=obj["type"],
        name=obj.get("name"),
        description=obj.get("description"),
        hd_public_key_derivation_path=obj.get("hdPublicKeyDerivationPath"),
    )


def _build_entity(entity_id: str, obj: Dict[str, Any]) -> Entity:
    raw_variables = obj.get("variables") or {}
    return Entity(
        id=entity_id,
        name=obj.get("name"),
        description=obj.get("description"),
        variables={vid: _build_variable(vid, raw) for vid, raw in raw_variables.items()},
    )


def _float_paths(obj: Any, path: str = "$") -> Iterator[str]:
    if isinstance(obj, float):
        yield path
    elif isinstance(obj, dict):
        for key, value in obj.items():
            yield from _float_paths(value, f"{path}.{key}")
    elif isinstance(obj, list):
        for index, value in enumerate(obj):
            yield from _float_paths(value, f"{path}[{index}]")


def parse_template(obj: Any) -> Outcome[Template]:
    """Check the structure of a template document and build a ``Template``.

    Variable tags are not checked here: an unknown tag is reported by the
    classifier for the entity actually being provisioned. Floats are refused
    anywhere in the document because the template is part of every wallet
    share's canonical bytes.
    """
    problems = validate_template_document(obj)
    problems.extend(f"{path}: floats are not allowed, use a string or an integer" for path in _float_paths(obj))
    if problems:
        return Outcome.failure(ConfigurationError("Template is invalid: " + "; ".join(problems)))

    entities = {eid: _build_entity(eid, raw) for eid, raw in obj["entities"].items()}
    return Outcome.success(Template(
        entities=entities,
        raw=obj,
        name=obj.get("name"),
        description=obj.get("description"),
    ))
