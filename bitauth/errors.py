"""
Error taxonomy and stage outcomes.

Every provisioning stage returns an ``Outcome``: either a value or a single
``BitauthError``. Only the command line turns a failed outcome into a
user-facing message and an exit code, so the pipeline itself stays testable.

    BitauthError
    ├── ConfigurationError   template declares something we cannot handle
    ├── TemplateLookupError  unknown template alias or entity id
    ├── InputError           missing or unusable settings
    ├── ValidationError      wallet/address data problems (all of them)
    ├── CryptoError          key generation or HD derivation failure
    └── StorageError         data directory and file problems
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class BitauthError(Exception):
    """Base exception for all bitauth failures."""

    code = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(BitauthError):
    """The template declares an unsupported or inconsistent configuration."""

    code = "configuration"


class TemplateLookupError(BitauthError, LookupError):
    """A template alias or entity id could not be resolved."""

    code = "lookup"


class InputError(BitauthError):
    """Required settings are missing or invalid."""

    code = "input"


class ValidationError(BitauthError):
    """User-supplied variable data does not match the declared variables."""

    code = "validation"

    def __init__(self, problems: List[str], context: str = ""):
        self.problems = list(problems)
        self.context = context
        heading = f"Invalid {context}" if context else "Validation failed"
        super().__init__(f"{heading}:\n" + "\n".join(f"  - {p}" for p in self.problems))


class CryptoError(BitauthError):
    """Key material could not be generated or derived."""

    code = "crypto"


class StorageError(BitauthError):
    """The data directory or a wallet/template file is unusable."""

    code = "storage"


@dataclass
class Outcome(Generic[T]):
    """Typed success/failure result of a pipeline stage."""

    ok: bool
    value: Optional[T] = None
    error: Optional[BitauthError] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, value: T, warnings: Optional[List[str]] = None) -> "Outcome[T]":
        return cls(ok=True, value=value, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: BitauthError, warnings: Optional[List[str]] = None) -> "Outcome[T]":
        return cls(ok=False, error=error, warnings=list(warnings or []))

    def unwrap(self) -> T:
        """Return the value, raising the stored error if the stage failed."""
        if not self.ok:
            assert self.error is not None
            raise self.error
        return self.value  # type: ignore[return-value]

    def propagate(self) -> "Outcome[U]":
        """Re-type a failed outcome so it can be returned by a later stage."""
        assert not self.ok and self.error is not None
        return Outcome(ok=False, error=self.error, warnings=list(self.warnings))
