"""Verifiable credential issuance for verified documents.

W3C VC 1.1 shaped credentials signed over their canonical JSON encoding,
with a compact JWS carrying the binding claims.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any

from docvault.sdk.did import placeholder_issuer_did, placeholder_subject_did
from docvault.sdk.errors import SigningFailure
from docvault.sdk.hashing import canonical_json
from docvault.sdk.models import (
    Clock,
    Credential,
    CredentialProof,
    Document,
    Issuer,
    Subject,
    format_timestamp,
    utcnow,
)
from docvault.sdk.signing import Signer

logger = logging.getLogger(__name__)

CREDENTIAL_VALIDITY_DAYS = 365


def new_credential_id() -> str:
    return f"vc:digilocker:{uuid.uuid4()}"


def build_credential_subject(
    document: Document,
    issuer: Issuer,
    subject: Subject,
    verified_at: datetime
) -> dict[str, Any]:
    """Map a verified document to the credentialSubject claim set."""
    return {
        "id": subject.did or placeholder_subject_did(subject.id),
        "documentId": document.id,
        "documentHash": document.digest.lower(),
        "documentType": document.document_type.value,
        "fileName": document.file_name,
        "fileSize": document.file_size,
        "verifiedBy": issuer.full_name,
        "authorityDepartment": issuer.department.value,
        "authorityId": issuer.employer_id,
        "verificationDate": format_timestamp(verified_at),
        "status": "verified",
    }


def build_jws_claims(credential: Credential) -> dict[str, Any]:
    """Claims the JWS binds: credential id, parties, validity and digest."""
    return {
        "jti": credential.id,
        "iss": credential.issuer,
        "sub": credential.subject_did,
        "iat": int(credential.issuance_date.timestamp()),
        "exp": int(credential.expiration_date.timestamp()),
        "documentHash": credential.document_digest,
    }


class CredentialIssuer:
    """Mints signed credentials; persisting them is the caller's job."""

    def __init__(
        self,
        signer: Signer,
        clock: Clock = utcnow,
        validity_days: int = CREDENTIAL_VALIDITY_DAYS
    ) -> None:
        if validity_days <= 0:
            raise ValueError("Credential validity must be positive")
        self.signer = signer
        self.clock = clock
        self.validity = timedelta(days=validity_days)

    def issue(
        self,
        document: Document,
        issuer: Issuer,
        subject: Subject,
        verified_at: datetime | None = None
    ) -> Credential:
        """Build and sign the credential for a verified document.

        Raises:
            SigningFailure: canonicalisation or signing failed
        """
        issued_at = self.clock()
        credential = Credential(
            id=new_credential_id(),
            issuer=issuer.did or placeholder_issuer_did(issuer.employer_id),
            issuance_date=issued_at,
            expiration_date=issued_at + self.validity,
            credential_subject=build_credential_subject(document, issuer, subject, verified_at or issued_at),
            document_id=document.id,
            subject_id=subject.id,
            issuer_id=issuer.id,
        )
        credential.proof = self._sign(credential)
        logger.info(f"Minted credential {credential.id} for document {document.id}")
        return credential

    def _sign(self, credential: Credential) -> CredentialProof:
        try:
            payload = canonical_json(credential.unsigned_document())
            signature = self.signer.sign(payload)
            jws = self.signer.encode_jws(build_jws_claims(credential))
        except Exception as e:
            raise SigningFailure(f"Failed to sign credential {credential.id}: {e}") from e

        return CredentialProof(
            type=self.signer.proof_type,
            created=format_timestamp(credential.issuance_date),
            verification_method=self.signer.verification_method(credential.issuer),
            jws=jws,
            signature_value=signature,
        )


def verification_link_data(credential: Credential, base_url: str) -> dict[str, Any]:
    """QR payload pointing a third party at the public verification page."""
    return {
        "vcId": credential.id,
        "documentHash": credential.document_digest,
        "verificationUrl": f"{base_url.rstrip('/')}/verify/{credential.id}",
        "issuer": credential.issuer,
        "issuanceDate": format_timestamp(credential.issuance_date),
        "documentType": credential.credential_subject["documentType"],
    }
