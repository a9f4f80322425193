"""Tests for the bitauth command line."""

import json

import pytest

from bitauth.cli import BitauthCLI, equivalent_command, parse_json_flag
from bitauth.errors import InputError
from bitauth.storage import WALLET_PROPOSAL_FILE, WALLET_SECRET_FILE
from bitauth.validation import CUSTOM_DATA_ADVISORY


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    data = tmp_path / "data"
    monkeypatch.setenv("BITAUTH_DATA_DIR", str(data))
    return data


def run(*args):
    return BitauthCLI().run(list(args))


class TestWalletNew:

    def test_creates_wallet_files(self, home, capsys):
        assert run("wallet", "new", "Personal Wallet", "--alias=personal", "--template=p2pkh", "--entity=owner") == 0
        captured = capsys.readouterr()
        result = json.loads(captured.out)
        assert result["walletAlias"] == "personal"
        assert (
            "Equivalent command: $ bitauth wallet new 'Personal Wallet' --alias='personal' "
            "--template='p2pkh' --entity='owner'"
        ) in captured.err
        assert result["entityId"] == "owner"

        wallet_dir = home / "wallets" / "personal"
        proposal = json.loads((wallet_dir / WALLET_PROPOSAL_FILE).read_text())
        secret = json.loads((wallet_dir / WALLET_SECRET_FILE).read_text())
        assert proposal["walletShares"]["owner"]["walletName"] == "Personal Wallet"
        assert secret["proposal"] == proposal
        assert result["secret"] == str(wallet_dir / WALLET_SECRET_FILE)

    def test_log_file_has_no_private_material(self, home, capsys):
        assert run("wallet", "new", "Vault", "--template=2-of-3", "--entity=signer_1") == 0
        secret = json.loads((home / "wallets" / "vault" / WALLET_SECRET_FILE).read_text())
        log = (home / "logs--sensitive-do-not-share.ndjson").read_text()
        assert "Wallet provisioned" in log
        assert secret["privateData"]["privateKeys"]["key1"] not in log
        assert secret["privateData"]["messagingKey"] not in log

    def test_existing_alias_fails(self, home, capsys):
        assert run("wallet", "new", "Twice", "--template=p2pkh", "--entity=owner") == 0
        capsys.readouterr()
        assert run("wallet", "new", "Twice", "--template=p2pkh", "--entity=owner") == 1
        assert "✖" in capsys.readouterr().err

    def test_wallet_data_prints_advisory(self, home, capsys):
        code = run(
            "wallet", "new", "Business",
            "--template=2-of-2-recoverable",
            "--entity=signer_1",
            '--wallet-data={"delay_seconds":"2592000"}',
        )
        assert code == 0
        assert CUSTOM_DATA_ADVISORY in capsys.readouterr().err

    def test_validation_errors_listed(self, home, capsys):
        code = run(
            "wallet", "new", "Business",
            "--template=2-of-2-recoverable",
            "--entity=signer_1",
            '--wallet-data={"delay_seconds":2592000}',
        )
        assert code == 1
        err = capsys.readouterr().err
        assert "✖ Invalid wallet variables:" in err
        assert 'Value of "delay_seconds" must be a string, got number.' in err
        assert CUSTOM_DATA_ADVISORY in err
        assert not (home / "wallets" / "business").exists()

    def test_invalid_json_names_flag(self, home, capsys):
        assert run("wallet", "new", "X", "--template=p2pkh", "--entity=owner", "--address-data=[") == 1
        assert "--address-data" in capsys.readouterr().err

    def test_template_json(self, home, capsys):
        template = json.dumps({"entities": {"solo": {"variables": {"k": {"type": "Key"}}}}})
        assert run("wallet", "new", "Inline", f"--template-json={template}", "--entity=solo") == 0
        proposal = json.loads((home / "wallets" / "inline" / WALLET_PROPOSAL_FILE).read_text())
        assert list(proposal["walletShares"]["solo"]["publicKeys"]) == ["k"]

    def test_template_and_template_json_exclusive(self, home):
        with pytest.raises(SystemExit) as exc:
            run("wallet", "new", "X", "--template=p2pkh", "--template-json={}", "--entity=owner")
        assert exc.value.code == 2

    def test_missing_name(self, home, capsys):
        assert run("wallet", "new", "--template=p2pkh", "--entity=owner") == 1
        assert "Please provide a wallet name." in capsys.readouterr().err

    def test_template_parameters_need_template(self, home, capsys):
        template = json.dumps({"entities": {}})
        assert run("wallet", "new", "X", f"--template-json={template}", "--template-parameters=a") == 1
        assert "--template-parameters requires --template" in capsys.readouterr().err

    def test_unknown_entity(self, home, capsys):
        assert run("wallet", "new", "X", "--template=p2pkh", "--entity=nobody") == 1
        assert "nobody" in capsys.readouterr().err

    def test_data_dir_flag(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        target = tmp_path / "elsewhere"
        assert run("--data-dir", str(target), "wallet", "new", "Flag", "--template=p2pkh", "--entity=owner") == 0
        assert (target / "wallets" / "flag" / WALLET_SECRET_FILE).exists()

    def test_alias_outside_wallets_refused(self, home, capsys):
        assert run("wallet", "new", "X", "--alias=../../escaped", "--template=p2pkh", "--entity=owner") == 1
        assert "cannot be an alias" in capsys.readouterr().err
        assert not (home.parent / "escaped").exists()

    def test_quiet_suppresses_errors(self, home, capsys):
        assert run("--quiet", "wallet", "new", "", "--template=p2pkh", "--entity=owner") == 1
        assert capsys.readouterr().err == ""


class TestTemplateCommand:

    def test_json_listing(self, home, capsys):
        assert run("template", "--json") == 0
        listing = json.loads(capsys.readouterr().out)
        assert listing["p2pkh"]["uniqueName"] == "Single Signature (P2PKH)"
        assert set(listing) == {"p2pkh", "2-of-3", "2-of-2-recoverable"}

    def test_text_listing(self, home, capsys):
        assert run("template") == 0
        out = capsys.readouterr().out
        assert "Available Bitauth Templates" in out
        assert "2-of-3 Multi-Signature" in out
        assert "  --entity=owner  Owner" in out
        assert "  --entity=trusted_party  Trusted Party" in out
        assert str(home / "templates") in out


class TestConfigCommand:

    def test_get(self, home, capsys):
        assert run("config", "get", "wallet.network") == 0
        assert json.loads(capsys.readouterr().out) == {"path": "wallet.network", "value": "mainnet"}

    def test_get_invalid_path(self, home, capsys):
        assert run("config", "get", "wallet.colour") == 1
        assert "Invalid config path" in capsys.readouterr().err

    def test_show_yaml(self, home, capsys):
        assert run("--format", "yaml", "config", "show") == 0
        assert "hd_public_key_derivation_path: m" in capsys.readouterr().out

    def test_validate(self, home, capsys, monkeypatch):
        monkeypatch.setenv("BITAUTH_NETWORK", "moonnet")
        assert run("config", "validate") == 0
        result = json.loads(capsys.readouterr().out)
        assert result["valid"] is False
        assert result["errors"] == ["wallet.network: validation failed for value moonnet"]

    def test_no_command_prints_help(self, home, capsys):
        assert run() == 0
        assert "usage: bitauth" in capsys.readouterr().out

    def test_unknown_subcommand(self, home, capsys):
        assert run("wallet") == 1
        assert "Unknown command: wallet" in capsys.readouterr().err


class TestHelpers:

    def test_parse_json_flag(self):
        assert parse_json_flag(None, "wallet-data") is None
        assert parse_json_flag('{"a":"b"}', "wallet-data") == {"a": "b"}
        with pytest.raises(InputError, match="--wallet-data"):
            parse_json_flag("{", "wallet-data")

    def test_equivalent_command(self):
        command = equivalent_command("Bob's Wallet", "bobs", "2-of-2-recoverable", "signer_1", {"delay_seconds": "1"})
        assert command == (
            "bitauth wallet new 'Bob'\\''s Wallet' --alias='bobs' --template='2-of-2-recoverable' "
            "--entity='signer_1' --wallet-data='{\"delay_seconds\": \"1\"}'"
        )

    def test_equivalent_command_quotes_every_value(self):
        command = equivalent_command("W", "it's", "o'clock", "o'wner")
        assert command == (
            "bitauth wallet new 'W' --alias='it'\\''s' --template='o'\\''clock' --entity='o'\\''wner'"
        )
