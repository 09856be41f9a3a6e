"""Test DID CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from docvault.cli.did_commands import app as did_app
from docvault.cli.main import app
from tests.helpers import TEST_SECRET


@pytest.fixture
def cli_runner() -> CliRunner:
    """CLI test runner."""
    return CliRunner()


@pytest.fixture
def env(tmp_path: Path) -> dict[str, str]:
    return {
        "DOCVAULT_DATABASE_URL": f"sqlite:///{tmp_path / 'did.db'}",
        "DOCVAULT_SIGNING_SECRET": TEST_SECRET,
    }


def test_did_keygen_stdout(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(did_app, ["keygen"])

    assert result.exit_code == 0
    lines = result.stdout.strip().splitlines()
    assert lines[0].startswith("did:key:z6Mk")
    assert lines[1].startswith("DOCVAULT_ED25519_SEED=")
    assert len(lines[1].split("=", 1)[1]) == 64


def test_did_keygen_with_seed_is_deterministic(cli_runner: CliRunner) -> None:
    first = cli_runner.invoke(did_app, ["keygen", "--seed", "test-seed-123"])
    second = cli_runner.invoke(did_app, ["keygen", "--seed", "test-seed-123"])

    assert first.exit_code == 0
    assert first.stdout == second.stdout


def test_did_resolve_did_key(cli_runner: CliRunner) -> None:
    did_key = "did:key:z6MkhaXgBZDvotDkL5257faiztiGiC2QtKLGpbnnEGta2doK"

    result = cli_runner.invoke(did_app, ["resolve", did_key])

    assert result.exit_code == 0
    did_doc = json.loads(result.stdout)
    assert did_doc["id"] == did_key
    assert did_doc["verificationMethod"][0]["publicKeyMultibase"] == did_key[8:]


def test_did_resolve_invalid_did_key(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(did_app, ["resolve", "did:key:invalid"])

    assert result.exit_code == 1
    assert "Invalid DID format" in result.stdout


def test_did_resolve_and_lookup_registry(cli_runner: CliRunner, env: dict[str, str]) -> None:
    """DIDs generated through the main app resolve through the did sub-app."""
    address = "0xAbC0000000000000000000000000000000000001"
    registered = cli_runner.invoke(app, ["register-subject", "alice", "-a", address], env=env)
    subject_id = next(
        line.split(":", 1)[1].strip() for line in registered.stdout.splitlines() if line.startswith("Subject ID:")
    )
    did = cli_runner.invoke(app, ["generate-did", "subject", subject_id], env=env).stdout.strip().splitlines()[-1]

    resolved = cli_runner.invoke(app, ["did", "resolve", did], env=env)
    looked_up = cli_runner.invoke(app, ["did", "lookup", address], env=env)

    assert resolved.exit_code == 0
    assert json.loads(resolved.stdout) == {"id": did, "owner": address.lower(), "active": True}
    assert looked_up.exit_code == 0
    assert looked_up.stdout.strip() == did


def test_did_resolve_unknown(cli_runner: CliRunner, env: dict[str, str]) -> None:
    result = cli_runner.invoke(app, ["did", "resolve", "did:digilocker:missing"], env=env)

    assert result.exit_code == 1
    assert "Error resolving DID" in result.stdout


def test_did_lookup_unknown(cli_runner: CliRunner, env: dict[str, str]) -> None:
    result = cli_runner.invoke(app, ["did", "lookup", "nobody"], env=env)

    assert result.exit_code == 1
    assert "No DID" in result.stdout


def test_did_resolve_truncated_did_key(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(did_app, ["resolve", "did:key:z6MkhaXgBZDvotDk"])

    assert result.exit_code == 1
    assert "Invalid DID format" in result.stdout
