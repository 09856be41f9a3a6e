"""High-level custody client.

Wires the identity registry, document lifecycle, credential issuer,
verifier and revocation ledger over one store and one signer, and
resolves ids to records for callers that only hold identifiers.
"""

from __future__ import annotations

from typing import Any

from docvault.sdk.did import IdentityRegistry, normalize_owner_key
from docvault.sdk.errors import AlreadyIssuedError, ConflictError, InvalidTypeError
from docvault.sdk.lifecycle import DocumentLifecycle
from docvault.sdk.models import (
    Clock,
    Credential,
    CredentialStatus,
    Department,
    Document,
    Issuer,
    RevocationOutcome,
    Subject,
    Verdict,
    VerificationOutcome,
    utcnow,
)
from docvault.sdk.repository import Collection, Repository
from docvault.sdk.revocation import RevocationLedger
from docvault.sdk.signing import SignatureVerifier, Signer
from docvault.sdk.store import KeyValueStore
from docvault.sdk.vc import CREDENTIAL_VALIDITY_DAYS, CredentialIssuer, verification_link_data
from docvault.sdk.verifier import CredentialVerifier


class CustodyClient:
    """Single entry point for the custody core."""

    def __init__(
        self,
        store: KeyValueStore,
        signer: Signer,
        verifier: SignatureVerifier | None = None,
        clock: Clock = utcnow,
        allow_resubmit_rejected: bool = True,
        validity_days: int = CREDENTIAL_VALIDITY_DAYS,
        verification_base_url: str = "http://localhost:5173"
    ) -> None:
        """Initialize custody client.

        Args:
            store: Shared key-value store for every record
            signer: Credential signer; also used to verify unless ``verifier`` is given
            verifier: Signature verifier matching ``signer``
            clock: Source of current time
            allow_resubmit_rejected: Whether rejected documents may be resubmitted
            validity_days: Credential lifetime
            verification_base_url: Base URL embedded in QR payloads
        """
        if store is None:
            raise ValueError("Store is required")
        if signer is None:
            raise ValueError("Signer is required")

        self.repository = Repository(store)
        self.clock = clock
        self.verification_base_url = verification_base_url
        self.identities = IdentityRegistry(store, clock)
        self.credential_issuer = CredentialIssuer(signer, clock, validity_days)
        self.credential_verifier = CredentialVerifier(self.repository, verifier or signer, clock)  # type: ignore[arg-type]
        self.revocations = RevocationLedger(self.repository, clock)
        self.lifecycle = DocumentLifecycle(
            self.repository, self.credential_issuer, self.revocations, clock, allow_resubmit_rejected
        )

    def register_subject(self, username: str, address: str | None = None, email: str | None = None) -> Subject:
        subject = Subject(
            username=username,
            address=address.strip().lower() if address else None,
            email=email.strip().lower() if email else None,
            created_at=self.clock(),
        )
        return self._register(self.repository.subjects, subject)

    def register_issuer(
        self,
        employer_id: str,
        department: str | Department,
        full_name: str,
        designation: str = ""
    ) -> Issuer:
        try:
            dept = Department(department) if not isinstance(department, Department) else department
        except ValueError:
            raise InvalidTypeError(f"Invalid department: {department}")
        issuer = Issuer(
            employer_id=employer_id,
            department=dept,
            full_name=full_name,
            designation=designation,
            created_at=self.clock(),
        )
        return self._register(self.repository.issuers, issuer)

    def _register(self, collection: Collection[Any], record: Any) -> Any:
        """Add a subject or issuer whose owner key no other record holds.

        Raises:
            ConflictError: the wallet address or employer id is already registered
        """
        owner = normalize_owner_key(record.owner_key)
        if not self.repository.reserve_owner(owner, record.id):
            raise ConflictError(f"{collection.label} already registered for {owner}")
        try:
            return collection.add(record)
        except Exception:
            self.repository.release_owner(owner)
            raise

    def deactivate_issuer(self, issuer_id: str) -> Issuer:
        issuer, version = self.repository.issuers.load(issuer_id)
        issuer.is_active = False
        if not self.repository.issuers.swap(issuer, version):
            raise ConflictError(f"Issuer {issuer_id} changed concurrently")
        return issuer

    def generate_subject_did(self, subject_id: str) -> str:
        """Assign a DID to a subject; a second call raises ``AlreadyIssuedError``."""
        return self._assign_did(self.repository.subjects, subject_id)

    def generate_issuer_did(self, issuer_id: str) -> str:
        return self._assign_did(self.repository.issuers, issuer_id)

    def _assign_did(self, collection: Collection[Any], record_id: str) -> str:
        record, version = collection.load(record_id)
        if record.did:
            raise AlreadyIssuedError(f"{collection.label} {record_id} already has a DID")

        did = self.identities.issue(record.owner_key)
        record.did = did
        if not collection.swap(record, version):
            self.identities.deactivate(did)
            raise ConflictError(f"{collection.label} {record_id} changed while assigning a DID")
        return did

    def upload(
        self,
        subject_id: str,
        document_type: str,
        data: bytes,
        locator: str,
        file_name: str = "",
        file_type: str = "application/octet-stream",
        description: str | None = None
    ) -> Document:
        return self.lifecycle.upload(subject_id, document_type, data, locator, file_name, file_type, description)

    def submit(self, document_id: str, issuer_id: str, original_bytes: bytes) -> VerificationOutcome:
        issuer = self.repository.issuers.get(issuer_id)
        return self.lifecycle.submit_for_verification(document_id, issuer, original_bytes)

    def revoke_credential(self, credential_id: str, issuer_id: str) -> RevocationOutcome:
        issuer = self.repository.issuers.get(issuer_id)
        return self.revocations.revoke(credential_id, issuer)

    def revoke_document(self, document_id: str, issuer_id: str) -> RevocationOutcome:
        issuer = self.repository.issuers.get(issuer_id)
        return self.lifecycle.revoke(document_id, issuer)

    def verify(self, credential_id: str) -> Verdict:
        """Public, unauthenticated credential check."""
        return self.credential_verifier.verify(credential_id)

    def get_document(self, document_id: str) -> Document:
        return self.repository.documents.get(document_id)

    def get_credential(self, credential_id: str) -> Credential:
        return self.repository.credentials.get(credential_id)

    def verification_link(self, credential_id: str) -> dict[str, Any]:
        return verification_link_data(self.get_credential(credential_id), self.verification_base_url)

    def documents_of(self, subject_id: str) -> list[Document]:
        return self.lifecycle.documents_of(subject_id)

    def credentials_of(self, subject_id: str) -> list[Credential]:
        """Active credentials held by a subject."""
        held = [
            vc for vc in self.repository.credentials.all()
            if vc.subject_id == subject_id and vc.status is CredentialStatus.ACTIVE
        ]
        return sorted(held, key=lambda vc: vc.issuance_date, reverse=True)

    def credentials_issued_by(self, issuer_id: str) -> list[Credential]:
        issued = [vc for vc in self.repository.credentials.all() if vc.issuer_id == issuer_id]
        return sorted(issued, key=lambda vc: vc.issuance_date, reverse=True)

    def pending_for(self, issuer_id: str) -> list[Document]:
        return self.lifecycle.pending_for(self.repository.issuers.get(issuer_id))

    def history_for(self, issuer_id: str) -> list[Document]:
        return self.lifecycle.history_for(self.repository.issuers.get(issuer_id))

    def stats_for(self, issuer_id: str) -> dict[str, Any]:
        return self.lifecycle.stats_for(self.repository.issuers.get(issuer_id))
