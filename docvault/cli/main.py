"""Typer CLI for docvault.

Provides commands: register-subject, register-issuer, generate-did, upload,
submit, revoke, verify, show, pending, stats.
Main entrypoint for the docvault command-line interface.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from docvault import __version__
from docvault.cli.config import DocVaultConfig, configure_logging, create_client
from docvault.cli.did_commands import app as did_app
from docvault.sdk.custody import CustodyClient
from docvault.sdk.errors import DocVaultError


app = typer.Typer(
    name="docvault",
    help="Document custody - upload, authority verification and verifiable credentials",
    add_completion=False,
    rich_markup_mode="rich"
)
console = Console()

app.add_typer(did_app, name="did", help="DID commands")


def version_callback(show_version: bool) -> None:
    """Show version and exit."""
    if show_version:
        console.print(f"docvault version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True
    )
) -> None:
    """docvault CLI."""
    pass


def open_client() -> CustodyClient:
    """Build a client from DOCVAULT_* settings."""
    config = DocVaultConfig()
    configure_logging(config)
    return create_client(config)


def _fail(action: str, error: Exception) -> None:
    code = error.code if isinstance(error, DocVaultError) else "invalid_input"
    console.print(f"❌ Error {action}: {code}: {error}")
    raise typer.Exit(1)


def _read_file(path: Path) -> bytes:
    if not path.exists():
        raise ValueError(f"File not found: {path}")
    return path.read_bytes()


@app.command()
def register_subject(
    username: str = typer.Argument(..., help="Subject username"),
    address: str | None = typer.Option(None, "--address", "-a", help="External wallet address"),
    email: str | None = typer.Option(None, "--email", "-e", help="Email address")
) -> None:
    """Register a citizen who can upload documents."""
    try:
        subject = open_client().register_subject(username, address, email)
        console.print("✅ Subject registered!")
        console.print(f"Subject ID: [bold]{subject.id}[/bold]")
    except (DocVaultError, ValueError) as e:
        _fail("registering subject", e)


@app.command()
def register_issuer(
    employer_id: str = typer.Argument(..., help="Authority employer ID"),
    department: str = typer.Argument(..., help="Department (aadhar, pan, license, passport, degree, other)"),
    full_name: str = typer.Argument(..., help="Authority display name"),
    designation: str = typer.Option("", "--designation", "-d", help="Designation")
) -> None:
    """Register a departmental authority."""
    try:
        issuer = open_client().register_issuer(employer_id, department, full_name, designation)
        console.print("✅ Issuer registered!")
        console.print(f"Issuer ID: [bold]{issuer.id}[/bold]")
        console.print(f"Department: {issuer.department.value}")
    except (DocVaultError, ValueError) as e:
        _fail("registering issuer", e)


@app.command()
def generate_did(
    kind: str = typer.Argument(..., help="'subject' or 'issuer'"),
    record_id: str = typer.Argument(..., help="Subject or issuer ID")
) -> None:
    """Assign a DID to a subject or issuer (once)."""
    try:
        client = open_client()
        if kind == "subject":
            did = client.generate_subject_did(record_id)
        elif kind == "issuer":
            did = client.generate_issuer_did(record_id)
        else:
            raise ValueError("Kind must be 'subject' or 'issuer'")
        console.print("✅ DID generated!")
        print(did)
    except (DocVaultError, ValueError) as e:
        _fail("generating DID", e)


@app.command()
def upload(
    subject_id: str = typer.Argument(..., help="Owning subject ID"),
    document_type: str = typer.Argument(..., help="Declared document type"),
    file: Path = typer.Argument(..., help="Document file"),
    locator: str | None = typer.Option(None, "--locator", "-l", help="Content store locator (e.g. IPFS CID)"),
    description: str | None = typer.Option(None, "--description", help="Free-text description")
) -> None:
    """Record an uploaded document as pending verification."""
    try:
        data = _read_file(file)
        document = open_client().upload(
            subject_id, document_type, data,
            locator or file.resolve().as_uri(),
            file_name=file.name,
            description=description,
        )
        console.print("✅ Document uploaded!")
        console.print(f"Document ID: [bold]{document.id}[/bold]")
        console.print(f"Digest: {document.digest}")
        console.print(f"State: {document.state.value}")
    except (DocVaultError, ValueError) as e:
        _fail("uploading document", e)


@app.command()
def submit(
    document_id: str = typer.Argument(..., help="Document ID to verify"),
    issuer_id: str = typer.Argument(..., help="Verifying issuer ID"),
    original_file: Path = typer.Argument(..., help="Authority's original copy")
) -> None:
    """Verify a document against the authority's original copy."""
    try:
        outcome = open_client().submit(document_id, issuer_id, _read_file(original_file))
    except (DocVaultError, ValueError) as e:
        _fail("verifying document", e)
        return

    if not outcome.matched:
        console.print("❌ Document hashes do not match. Document rejected.")
        console.print(f"Stored digest: {outcome.document.digest[:20]}...")
        console.print(f"Submitted digest: {outcome.candidate_digest[:20]}...")
        raise typer.Exit(1)

    console.print("✅ Document verified!")
    console.print(f"Credential ID: [bold]{outcome.credential.id}[/bold]")  # type: ignore[union-attr]


@app.command()
def revoke(
    credential_id: str = typer.Argument(..., help="Credential ID to revoke"),
    issuer_id: str = typer.Argument(..., help="Issuing authority ID")
) -> None:
    """Revoke a credential and its document."""
    try:
        outcome = open_client().revoke_credential(credential_id, issuer_id)
        if outcome.already_revoked:
            console.print("✅ Credential was already revoked")
        else:
            console.print("✅ Credential revoked!")
        console.print(f"Document ID: {outcome.document_id}")
    except (DocVaultError, ValueError) as e:
        _fail("revoking credential", e)


@app.command()
def verify(
    credential_id: str = typer.Argument(..., help="Credential ID to check"),
    as_json: bool = typer.Option(False, "--json", help="Print the verdict as JSON")
) -> None:
    """Check a credential's signature, revocation and expiry."""
    try:
        verdict = open_client().verify(credential_id)
    except DocVaultError as e:
        _fail("verifying credential", e)
        return

    if as_json:
        print(verdict.model_dump_json(indent=2))
    elif verdict.valid:
        console.print("✅ Credential valid")
    else:
        console.print(f"❌ Credential {verdict.outcome.value}: {', '.join(verdict.reasons)}")
    if not verdict.valid:
        raise typer.Exit(1)


@app.command()
def show(
    credential_id: str = typer.Argument(..., help="Credential ID"),
    qr: bool = typer.Option(False, "--qr", help="Print the verification QR payload instead")
) -> None:
    """Print a credential in its W3C JSON form."""
    try:
        client = open_client()
        data = client.verification_link(credential_id) if qr else client.get_credential(credential_id).to_vc()
        print(json.dumps(data, indent=2))  # Use print() to avoid rich formatting
    except DocVaultError as e:
        _fail("reading credential", e)


@app.command()
def pending(
    issuer_id: str = typer.Argument(..., help="Issuer ID")
) -> None:
    """List documents awaiting the issuer's department."""
    try:
        documents = open_client().pending_for(issuer_id)
    except DocVaultError as e:
        _fail("listing pending documents", e)
        return

    console.print(f"{len(documents)} pending document(s)")
    for document in documents:
        console.print(f"{document.id}  {document.document_type.value}  {document.file_name}")


@app.command()
def stats(
    issuer_id: str = typer.Argument(..., help="Issuer ID")
) -> None:
    """Show department verification statistics."""
    try:
        print(json.dumps(open_client().stats_for(issuer_id), indent=2))
    except DocVaultError as e:
        _fail("computing statistics", e)


if __name__ == "__main__":
    app()
