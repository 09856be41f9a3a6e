"""Credential revocation with cascade to the bound document."""

from __future__ import annotations

import logging

from docvault.sdk.errors import ConflictError, ForbiddenError, NotFoundError
from docvault.sdk.models import Clock, CredentialStatus, DocumentState, Issuer, RevocationOutcome, utcnow
from docvault.sdk.repository import Repository

logger = logging.getLogger(__name__)

MAX_SWAP_ATTEMPTS = 5


class RevocationLedger:
    """Terminates credentials; revoking twice is a successful no-op."""

    def __init__(self, repository: Repository, clock: Clock = utcnow) -> None:
        self.repository = repository
        self.clock = clock

    def revoke(self, credential_id: str, requesting_issuer: Issuer) -> RevocationOutcome:
        """Revoke ``credential_id`` on behalf of its issuer.

        Raises:
            NotFoundError: no such credential
            ForbiddenError: requester did not issue the credential
        """
        if not requesting_issuer.is_active:
            raise ForbiddenError(f"Issuer {requesting_issuer.id} is inactive")
        for _ in range(MAX_SWAP_ATTEMPTS):
            credential, version = self.repository.credentials.load(credential_id)
            if credential.issuer_id != requesting_issuer.id:
                raise ForbiddenError(f"Issuer {requesting_issuer.id} did not issue {credential_id}")

            if credential.status is CredentialStatus.REVOKED:
                self._cascade(credential.document_id, credential_id)
                return RevocationOutcome(
                    credential_id=credential_id,
                    document_id=credential.document_id,
                    revoked_at=credential.revoked_at or self.clock(),
                    already_revoked=True,
                )

            credential.status = CredentialStatus.REVOKED
            credential.revoked_at = self.clock()
            if self.repository.credentials.swap(credential, version):
                self._cascade(credential.document_id, credential_id)
                logger.info(f"Revoked credential {credential_id}")
                return RevocationOutcome(
                    credential_id=credential_id,
                    document_id=credential.document_id,
                    revoked_at=credential.revoked_at,
                )
            logger.warning(f"Concurrent update on credential {credential_id}, retrying revocation")

        raise ConflictError(f"Could not revoke {credential_id}: too many concurrent updates")

    def _cascade(self, document_id: str, credential_id: str) -> None:
        for _ in range(MAX_SWAP_ATTEMPTS):
            try:
                document, version = self.repository.documents.load(document_id)
            except NotFoundError:
                logger.warning(f"Credential {credential_id} is bound to missing document {document_id}")
                return
            if document.state is DocumentState.REVOKED:
                return

            document.state = DocumentState.REVOKED
            document.updated_at = self.clock()
            if self.repository.documents.swap(document, version):
                logger.info(f"Document {document_id} revoked with credential {credential_id}")
                return

        raise ConflictError(f"Could not revoke document {document_id}: too many concurrent updates")
