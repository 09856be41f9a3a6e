"""DID CLI commands.

Provides DID resolution, owner lookup and Ed25519 signing key generation.
"""

from __future__ import annotations

import hashlib
import json

import typer
from rich.console import Console
from nacl.signing import SigningKey

from docvault.cli.config import DocVaultConfig, create_store
from docvault.sdk.did import (
    IdentityRegistry,
    generate_did_key,
    generate_ed25519_keypair,
    resolve_did_document,
)
from docvault.sdk.errors import DocVaultError

app = typer.Typer(name="did", help="DID commands")
console = Console()


def _registry() -> IdentityRegistry:
    return IdentityRegistry(create_store(DocVaultConfig()))


@app.command("resolve")
def resolve_command(
    did: str = typer.Argument(..., help="DID to resolve")
) -> None:
    """Resolve a did:key to its DID document, or a registry DID to its owner."""
    if did.startswith("did:key:"):
        try:
            did_doc = resolve_did_document(did)
        except ValueError:
            console.print(f"[red]Error: Invalid DID format: {did}[/red]", emoji=False)
            raise typer.Exit(1)
        print(json.dumps(did_doc, indent=2))
        return

    try:
        registry = _registry()
        owner = registry.resolve(did)
        print(json.dumps({"id": did, "owner": owner, "active": registry.is_active(did)}, indent=2))
    except (DocVaultError, ValueError) as e:
        console.print(f"[red]Error resolving DID: {e}[/red]")
        raise typer.Exit(1)


@app.command("lookup")
def lookup_command(
    owner_key: str = typer.Argument(..., help="Wallet address or owner key")
) -> None:
    """Find the DID held by an owner."""
    try:
        did = _registry().lookup(owner_key)
    except (DocVaultError, ValueError) as e:
        console.print(f"[red]Error looking up DID: {e}[/red]")
        raise typer.Exit(1)

    if not did:
        console.print(f"[red]No DID for {owner_key}[/red]")
        raise typer.Exit(1)
    print(did)


@app.command("keygen")
def keygen_command(
    seed: str | None = typer.Option(None, "--seed", help="Deterministic seed phrase for key generation")
) -> None:
    """Generate an Ed25519 signing seed and its did:key for the ed25519 scheme."""
    if seed:
        signing_key = SigningKey(hashlib.sha256(seed.encode()).digest())
        did_key = generate_did_key(signing_key)
    else:
        signing_key, did_key = generate_ed25519_keypair()

    # Use print() instead of console.print() to avoid emoji conversion
    print(did_key)
    print(f"DOCVAULT_ED25519_SEED={bytes(signing_key).hex()}")
