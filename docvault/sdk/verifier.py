"""Public credential verification.

Read-only: recomputes the signature, applies revocation and expiry, and
checks that the claimed digest still matches the bound document.
"""

from __future__ import annotations

import logging

import jwt

from docvault.sdk.errors import NotFoundError
from docvault.sdk.hashing import canonical_json, digests_match
from docvault.sdk.models import Clock, Credential, CredentialStatus, DocumentState, Verdict, VerdictOutcome, utcnow
from docvault.sdk.repository import Repository
from docvault.sdk.signing import SignatureVerifier
from docvault.sdk.vc import build_jws_claims

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """Answers "can this credential be trusted right now, and if not, why"."""

    def __init__(self, repository: Repository, verifier: SignatureVerifier, clock: Clock = utcnow) -> None:
        self.repository = repository
        self.verifier = verifier
        self.clock = clock

    def verify(self, credential_id: str) -> Verdict:
        now = self.clock()
        try:
            credential = self.repository.credentials.get(credential_id)
        except NotFoundError:
            return Verdict(
                credential_id=credential_id, outcome=VerdictOutcome.NOT_FOUND,
                reasons=["not_found"], checked_at=now,
            )

        signature_valid = self.check_signature(credential)
        expired = now > credential.expiration_date
        active = credential.status is CredentialStatus.ACTIVE
        bound = self._check_binding(credential)

        reasons = []
        if not active:
            reasons.append("revoked")
        if not signature_valid:
            reasons.append("signature_invalid")
        if expired:
            reasons.append("expired")
        if not bound:
            reasons.append("document_mismatch")

        valid = signature_valid and not expired and active and bound
        if not active:
            outcome = VerdictOutcome.NOT_FOUND
        else:
            outcome = VerdictOutcome.VALID if valid else VerdictOutcome.INVALID

        return Verdict(
            credential_id=credential_id,
            outcome=outcome,
            valid=valid,
            signature_valid=signature_valid,
            expired=expired,
            active=active,
            bound=bound,
            reasons=reasons,
            status=credential.effective_status(now),
            checked_at=now,
        )

    def check_signature(self, credential: Credential) -> bool:
        """Signature value and JWS must both verify and agree with the credential."""
        proof = credential.proof
        if proof is None:
            return False

        try:
            payload = canonical_json(credential.unsigned_document())
        except (TypeError, ValueError):
            return False
        if not self.verifier.verify(payload, proof.signature_value):
            logger.warning(f"Signature mismatch on credential {credential.id}")
            return False

        try:
            claims = self.verifier.decode_jws(proof.jws)
        except jwt.InvalidTokenError:
            logger.warning(f"JWS rejected on credential {credential.id}")
            return False
        expected = build_jws_claims(credential)
        return all(claims.get(name) == value for name, value in expected.items())

    def _check_binding(self, credential: Credential) -> bool:
        """The document must reference this credential and still carry its digest."""
        try:
            document = self.repository.documents.get(credential.document_id)
        except NotFoundError:
            return False
        if document.credential_id != credential.id:
            return False
        if document.state not in (DocumentState.VERIFIED, DocumentState.REVOKED):
            return False
        return digests_match(credential.document_digest, document.digest)
