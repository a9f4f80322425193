"""Data directory, template registry and wallet files.

Layout of the data directory::

    <data_dir>/
        readme.md
        logs--sensitive-do-not-share.ndjson
        templates/<alias>.json
        wallets/<wallet alias>/wallet-proposal.json
        wallets/<wallet alias>/wallet-secret.json
"""

from __future__ import annotations

import json
import os
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from bitauth.core import format_json
from bitauth.defaults import DATA_DIR_README, DEFAULT_TEMPLATES
from bitauth.errors import Outcome, StorageError, TemplateLookupError
from bitauth.observability import BitauthLayer, get_logger
from bitauth.template import Template, parse_template
from bitauth.wallet import WalletProposal, WalletSecret

logger = get_logger("storage", BitauthLayer.STORAGE)

TEMPLATES_DIR = "templates"
WALLETS_DIR = "wallets"
README_FILE = "readme.md"
WALLET_SECRET_FILE = "wallet-secret.json"
WALLET_PROPOSAL_FILE = "wallet-proposal.json"


class DataDirectory:
    """The on-disk home of templates, wallets and logs."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()

    @property
    def templates(self) -> Path:
        return self.root / TEMPLATES_DIR

    @property
    def wallets(self) -> Path:
        return self.root / WALLETS_DIR

    def ensure(self) -> "DataDirectory":
        """Create the directory tree and restore the readme if it differs."""
        try:
            self.templates.mkdir(parents=True, exist_ok=True)
            self.wallets.mkdir(parents=True, exist_ok=True)
            readme = self.root / README_FILE
            current = readme.read_text(encoding="utf-8") if readme.exists() else None
            if current != DATA_DIR_README:
                logger.info("Readme does not match, overwriting", path=str(readme))
                readme.write_text(DATA_DIR_README, encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Cannot recover from non-existent or malformed data directory {self.root}: {e}"
            ) from e
        return self

    def wallet_path(self, wallet_alias: str) -> Path:
        return self.wallets / wallet_alias


@dataclass(frozen=True)
class TemplateListing:
    alias: str
    template: Template
    unique_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"template": self.template.raw, "uniqueName": self.unique_name}


class TemplateRegistry:
    """Alias-keyed view over ``<data_dir>/templates/*.json``."""

    def __init__(self, listings: Mapping[str, TemplateListing]):
        self._listings = dict(listings)

    def items(self):
        return self._listings.items()

    def lookup(self, alias: str) -> Outcome[TemplateListing]:
        listing = self._listings.get(alias)
        if listing is None:
            return Outcome.failure(TemplateLookupError(
                f"A template with the alias '{alias}' was not found in the current data directory."
            ))
        return Outcome.success(listing)

    def to_dict(self) -> Dict[str, Any]:
        return {alias: listing.to_dict() for alias, listing in self._listings.items()}

    @classmethod
    def from_templates(cls, templates: Mapping[str, Template]) -> "TemplateRegistry":
        """Build listings, disambiguating templates that share a name."""
        names = Counter(t.name for t in templates.values() if t.name is not None)
        listings: Dict[str, TemplateListing] = {}
        for alias, template in templates.items():
            if template.name is None:
                unique_name = alias
            elif names[template.name] > 1:
                unique_name = f"{template.name} [{alias}]"
            else:
                unique_name = template.name
            listings[alias] = TemplateListing(alias=alias, template=template, unique_name=unique_name)
        return cls(listings)

    @classmethod
    def load(cls, data_dir: DataDirectory) -> "TemplateRegistry":
        """Read every template file, restoring bundled templates first.

        Raises ``StorageError`` when a template file is unreadable, not JSON,
        or structurally invalid.
        """
        contents: Dict[str, str] = {}
        for path in sorted(data_dir.templates.glob("*.json")):
            try:
                contents[path.stem] = path.read_text(encoding="utf-8")
            except OSError as e:
                raise StorageError(f"Failed to read template file: {e}") from e
        logger.trace("Available template paths", aliases=sorted(contents))

        for alias, template in DEFAULT_TEMPLATES.items():
            expected = format_json(template)
            if contents.get(alias) == expected:
                logger.trace(f'Template "{alias}" exists and has not been modified.')
                continue
            path = data_dir.templates / f"{alias}.json"
            logger.debug(f'Template "{alias}" does not exist or was modified, re-writing', path=str(path))
            try:
                path.write_text(expected, encoding="utf-8")
            except OSError as e:
                raise StorageError(f"Failed to write template file {path}: {e}") from e
            contents[alias] = expected

        templates: Dict[str, Template] = {}
        for alias, content in sorted(contents.items()):
            try:
                document = json.loads(content)
            except json.JSONDecodeError as e:
                raise StorageError(f'Template is malformed - alias "{alias}": {e}') from e
            parsed = parse_template(document)
            if not parsed.ok:
                raise StorageError(f'Template is invalid - alias "{alias}": {parsed.error}')
            templates[alias] = parsed.unwrap()

        return cls.from_templates(templates)


def _write_private(path: Path, content: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)


def write_wallet(
    data_dir: DataDirectory,
    wallet_alias: str,
    proposal: WalletProposal,
    secret: WalletSecret,
) -> Dict[str, Path]:
    """Write the proposal and secret of a new wallet; never overwrites."""
    wallet_dir = data_dir.wallet_path(wallet_alias)
    if wallet_dir.resolve().parent != data_dir.wallets.resolve():
        raise StorageError(
            f"The alias '{wallet_alias}' does not name a directory inside {data_dir.wallets}"
        )
    if wallet_dir.exists():
        raise StorageError(
            f"A wallet with the alias '{wallet_alias}' already exists: {wallet_dir}"
        )
    proposal_path = wallet_dir / WALLET_PROPOSAL_FILE
    secret_path = wallet_dir / WALLET_SECRET_FILE
    try:
        wallet_dir.mkdir(parents=True)
        _write_private(secret_path, format_json(secret.to_dict()) + "\n")
        proposal_path.write_text(format_json(proposal.to_dict()) + "\n", encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write wallet '{wallet_alias}': {e}") from e
    logger.info("Wallet written", wallet_alias=wallet_alias, path=str(wallet_dir))
    return {"proposal": proposal_path, "secret": secret_path}


def find_wallet(data_dir: DataDirectory, wallet_alias: str) -> Optional[Path]:
    path = data_dir.wallet_path(wallet_alias)
    return path if (path / WALLET_SECRET_FILE).exists() else None
