"""Document lifecycle: upload, authority verification and revocation.

States move ``pending -> verified | rejected`` and ``verified -> revoked``.
Every transition is a compare-and-swap on the document record, so two
submissions racing on one document serialise without blocking others.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from docvault.sdk.errors import (
    AlreadyRejectedError,
    AlreadyVerifiedError,
    ConflictError,
    ForbiddenError,
    InvalidTypeError,
    NotFoundError,
)
from docvault.sdk.hashing import digest, digests_match
from docvault.sdk.models import (
    Clock,
    Document,
    DocumentState,
    DocumentType,
    Issuer,
    RevocationOutcome,
    VerificationOutcome,
    utcnow,
)
from docvault.sdk.repository import Repository
from docvault.sdk.revocation import RevocationLedger
from docvault.sdk.vc import CredentialIssuer

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)


def parse_document_type(value: str | DocumentType) -> DocumentType:
    """Coerce a declared type, rejecting anything outside the enumeration."""
    if isinstance(value, DocumentType):
        return value
    try:
        return DocumentType(str(value).strip().lower())
    except ValueError:
        raise InvalidTypeError(f"Invalid document type: {value}")


class DocumentLifecycle:
    """Owns every state change of a document record."""

    def __init__(
        self,
        repository: Repository,
        credential_issuer: CredentialIssuer,
        revocation_ledger: RevocationLedger,
        clock: Clock = utcnow,
        allow_resubmit_rejected: bool = True
    ) -> None:
        self.repository = repository
        self.credential_issuer = credential_issuer
        self.revocation_ledger = revocation_ledger
        self.clock = clock
        self.allow_resubmit_rejected = allow_resubmit_rejected

    def upload(
        self,
        subject_id: str,
        document_type: str | DocumentType,
        data: bytes,
        locator: str,
        file_name: str = "",
        file_type: str = "application/octet-stream",
        description: str | None = None
    ) -> Document:
        """Record a freshly uploaded document in ``pending`` state."""
        declared = parse_document_type(document_type)
        if not locator:
            raise ValueError("Storage locator is required")
        self.repository.subjects.get(subject_id)

        now = self.clock()
        document = Document(
            subject_id=subject_id,
            document_type=declared,
            digest=digest(data),
            locator=locator,
            file_name=file_name,
            file_size=len(data),
            file_type=file_type,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self.repository.documents.add(document)
        logger.info(f"Uploaded document {document.id} ({declared.value}) for subject {subject_id}")
        return document

    def submit_for_verification(self, document_id: str, issuer: Issuer, original_bytes: bytes) -> VerificationOutcome:
        """Compare an authority's original bytes with the stored digest.

        A match verifies the document and mints its credential; a mismatch
        rejects it. Both are normal outcomes.

        Raises:
            NotFoundError: no such document
            ForbiddenError: issuer inactive, wrong department, or document revoked
            AlreadyVerifiedError: document already verified
            AlreadyRejectedError: rejected and resubmission disabled
            SigningFailure: credential could not be signed; document unchanged
        """
        document, version = self.repository.documents.load(document_id)
        self._authorize(issuer, document)
        self._check_submittable(document)

        candidate = digest(original_bytes)
        now = self.clock()
        document.verification_digest = candidate
        document.updated_at = now

        if not digests_match(candidate, document.digest):
            document.state = DocumentState.REJECTED
            if not self.repository.documents.swap(document, version):
                self._raise_lost_swap(document_id)
            logger.info(f"Document {document_id} rejected by issuer {issuer.id}: digest mismatch")
            return VerificationOutcome(document=document, matched=False, candidate_digest=candidate)

        subject = self.repository.subjects.get(document.subject_id)
        credential = self.credential_issuer.issue(document, issuer, subject, verified_at=now)
        self.repository.credentials.add(credential)

        document.state = DocumentState.VERIFIED
        document.verified_by = issuer.id
        document.verified_at = now
        document.credential_id = credential.id
        try:
            swapped = self.repository.documents.swap(document, version)
        except Exception:
            self.repository.credentials.remove(credential.id)
            raise
        if not swapped:
            self.repository.credentials.remove(credential.id)
            self._raise_lost_swap(document_id)

        logger.info(f"Document {document_id} verified by issuer {issuer.id}, credential {credential.id}")
        return VerificationOutcome(document=document, matched=True, candidate_digest=candidate, credential=credential)

    def revoke(self, document_id: str, issuer: Issuer) -> RevocationOutcome:
        """Revoke a verified document through its bound credential."""
        document = self.repository.documents.get(document_id)
        if document.verified_by != issuer.id:
            raise ForbiddenError(f"Issuer {issuer.id} did not verify document {document_id}")
        if not document.credential_id:
            raise NotFoundError(f"Document {document_id} has no credential")
        return self.revocation_ledger.revoke(document.credential_id, issuer)

    def pending_for(self, issuer: Issuer) -> list[Document]:
        """Department documents still awaiting a decision, newest first."""
        pending = [
            doc for doc in self.repository.documents.all()
            if issuer.covers(doc.document_type) and doc.state is DocumentState.PENDING
        ]
        return sorted(pending, key=lambda doc: doc.created_at, reverse=True)

    def history_for(self, issuer: Issuer) -> list[Document]:
        """Documents this issuer verified, most recent first."""
        verified = [doc for doc in self.repository.documents.all() if doc.verified_by == issuer.id]
        return sorted(verified, key=lambda doc: doc.verified_at or doc.updated_at, reverse=True)

    def documents_of(self, subject_id: str) -> list[Document]:
        owned = [doc for doc in self.repository.documents.all() if doc.subject_id == subject_id]
        return sorted(owned, key=lambda doc: doc.created_at, reverse=True)

    def stats_for(self, issuer: Issuer) -> dict[str, Any]:
        """Dashboard counters for the issuer's department."""
        documents = [doc for doc in self.repository.documents.all() if issuer.covers(doc.document_type)]
        counts = {state: 0 for state in DocumentState}
        for doc in documents:
            counts[doc.state] += 1

        since = self.clock() - RECENT_WINDOW
        recent = sum(
            1 for doc in documents
            if doc.state is DocumentState.VERIFIED and doc.verified_at and doc.verified_at >= since
        )
        total = len(documents)
        verified = counts[DocumentState.VERIFIED]
        return {
            "department": issuer.department.value,
            "total_documents": total,
            "pending_verifications": counts[DocumentState.PENDING],
            "verified_documents": verified,
            "rejected_documents": counts[DocumentState.REJECTED],
            "revoked_documents": counts[DocumentState.REVOKED],
            "recent_verifications": recent,
            "verification_rate": round(verified / total * 100) if total else 0,
        }

    def _authorize(self, issuer: Issuer, document: Document) -> None:
        if not issuer.is_active:
            raise ForbiddenError(f"Issuer {issuer.id} is inactive")
        if not issuer.covers(document.document_type):
            raise ForbiddenError(
                f"Document {document.id} ({document.document_type.value}) is outside department {issuer.department.value}"
            )

    def _check_submittable(self, document: Document) -> None:
        if document.state is DocumentState.VERIFIED:
            raise AlreadyVerifiedError(f"Document {document.id} is already verified")
        if document.state is DocumentState.REVOKED:
            raise ForbiddenError(f"Document {document.id} is revoked")
        if document.state is DocumentState.REJECTED and not self.allow_resubmit_rejected:
            raise AlreadyRejectedError(f"Document {document.id} was rejected and cannot be resubmitted")

    def _raise_lost_swap(self, document_id: str) -> None:
        logger.warning(f"Concurrent update on document {document_id}")
        current = self.repository.documents.get(document_id)
        if current.state is DocumentState.VERIFIED:
            raise AlreadyVerifiedError(f"Document {document_id} is already verified")
        raise ConflictError(f"Document {document_id} changed during verification")
