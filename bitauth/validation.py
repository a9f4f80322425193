"""
Wallet and address data validation.

User-supplied ``WalletData`` (one record) and ``AddressData`` (one record per
pre-generated address) must contain exactly the variable ids the entity
declares, each with a string value. Every problem is collected so a single
failed run reports all of them at once.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from bitauth.errors import Outcome, ValidationError
from bitauth.observability import BitauthLayer, get_logger

logger = get_logger("validation", BitauthLayer.VALIDATION)

CUSTOM_DATA_ADVISORY = (
    "WARNING: this wallet template requires custom variables - bitauth does not yet "
    'support "dry-run" testing, so invalid variables may prevent funds from being '
    "spendable. Test this wallet carefully before using it on mainnet."
)


def _describe_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def record_problems(data: Any, expected_ids: Sequence[str]) -> List[str]:
    """Every reason ``data`` is not a valid record, in a stable order."""
    if not isinstance(data, dict):
        return [f"Expected an object, got {_describe_type(data)}."]

    problems: List[str] = []
    expected = list(expected_ids)
    for variable_id in expected:
        if variable_id not in data:
            problems.append(f'Missing required variable "{variable_id}".')

    allowed = set(expected)
    for key, value in data.items():
        if key not in allowed:
            listing = ", ".join(f'"{i}"' for i in expected) or "none"
            problems.append(f'Unexpected key "{key}" (expected: {listing}).')
        elif not isinstance(value, str):
            problems.append(f'Value of "{key}" must be a string, got {_describe_type(value)}.')
    return problems


def verify_record(
    data: Any,
    expected_ids: Sequence[str],
    context: str = "wallet data",
) -> Outcome[Dict[str, str]]:
    """Validate one wallet/address data record against ``expected_ids``."""
    problems = record_problems(data, expected_ids)
    if problems:
        return Outcome.failure(ValidationError(problems, context=context))
    return Outcome.success(dict(data))


def verify_address_data_list(items: Any, expected_ids: Sequence[str]) -> Outcome[List[Dict[str, str]]]:
    """Validate every element of an address data list; order is preserved."""
    if not isinstance(items, list):
        return Outcome.failure(ValidationError(
            [f"Address data must be an array, got {_describe_type(items)}."],
            context="address data",
        ))

    problems: List[str] = []
    for index, item in enumerate(items):
        problems.extend(f"[{index}] {p}" for p in record_problems(item, expected_ids))

    if problems:
        logger.debug("Address data rejected", problem_count=len(problems))
        return Outcome.failure(ValidationError(problems, context="address data"))
    return Outcome.success([dict(item) for item in items])
