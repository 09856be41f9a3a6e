"""Test credential minting and the W3C credential shape."""

from __future__ import annotations

from datetime import timedelta

import pytest

from docvault.sdk.errors import SigningFailure
from docvault.sdk.hashing import canonical_json, digest
from docvault.sdk.models import Credential, CredentialStatus, Document, DocumentType, Issuer, Department, Subject
from docvault.sdk.signing import HmacSigner
from docvault.sdk.vc import (
    CREDENTIAL_VALIDITY_DAYS,
    CredentialIssuer,
    build_jws_claims,
    verification_link_data,
)
from tests.helpers import PASSPORT_BYTES, TEST_SECRET, FixedClock


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def parties() -> tuple[Document, Issuer, Subject]:
    subject = Subject(id="subj-1", username="alice")
    issuer = Issuer(
        id="iss-1",
        employer_id="EMP-001",
        department=Department.PASSPORT,
        full_name="Passport Office Pune",
    )
    document = Document(
        id="doc-1",
        subject_id=subject.id,
        document_type=DocumentType.PASSPORT,
        digest=digest(PASSPORT_BYTES),
        locator="ipfs://cid",
        file_name="passport.pdf",
        file_size=len(PASSPORT_BYTES),
    )
    return document, issuer, subject


def mint(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> Credential:
    document, issuer, subject = parties
    return CredentialIssuer(HmacSigner(TEST_SECRET), clock).issue(document, issuer, subject)


def test_credential_shape(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    """Credential carries W3C context, types, schema and the document claims."""
    vc = mint(clock, parties).to_vc()

    assert vc["@context"] == ["https://www.w3.org/2018/credentials/v1"]
    assert vc["type"] == ["VerifiableCredential", "DocumentVerificationCredential"]
    assert vc["id"].startswith("vc:digilocker:")
    assert vc["issuanceDate"] == "2024-01-15T09:30:00.000Z"
    assert vc["credentialSchema"]["type"] == "JsonSchemaValidator2018"
    assert vc["credentialSubject"] == {
        "id": "did:web:digilocker:user:subj-1",
        "documentId": "doc-1",
        "documentHash": digest(PASSPORT_BYTES),
        "documentType": "passport",
        "fileName": "passport.pdf",
        "fileSize": len(PASSPORT_BYTES),
        "verifiedBy": "Passport Office Pune",
        "authorityDepartment": "passport",
        "authorityId": "EMP-001",
        "verificationDate": "2024-01-15T09:30:00.000Z",
        "status": "verified",
    }


def test_placeholder_dids(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    credential = mint(clock, parties)

    assert credential.issuer == "did:web:digilocker:authority:EMP-001"
    assert credential.subject_did == "did:web:digilocker:user:subj-1"
    assert credential.proof.verification_method == "did:web:digilocker:authority:EMP-001#keys-1"  # type: ignore[union-attr]


def test_assigned_dids_take_precedence(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    document, issuer, subject = parties
    issuer.did = "did:digilocker:issuer"
    subject.did = "did:digilocker:subject"

    credential = CredentialIssuer(HmacSigner(TEST_SECRET), clock).issue(document, issuer, subject)

    assert credential.issuer == "did:digilocker:issuer"
    assert credential.subject_did == "did:digilocker:subject"


def test_expiry_is_one_year(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    credential = mint(clock, parties)

    assert CREDENTIAL_VALIDITY_DAYS == 365
    assert credential.expiration_date - credential.issuance_date == timedelta(days=365)
    assert credential.to_vc()["expirationDate"] == "2025-01-14T09:30:00.000Z"
    assert credential.status is CredentialStatus.ACTIVE


def test_effective_status(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    credential = mint(clock, parties)

    assert credential.effective_status(clock()) is CredentialStatus.ACTIVE
    assert credential.effective_status(clock() + timedelta(days=366)) is CredentialStatus.EXPIRED
    credential.status = CredentialStatus.REVOKED
    assert credential.effective_status(clock() + timedelta(days=366)) is CredentialStatus.REVOKED


def test_proof_signs_canonical_document(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    """Signature covers the canonical encoding of everything except the proof."""
    signer = HmacSigner(TEST_SECRET)
    credential = mint(clock, parties)
    proof = credential.to_vc()["proof"]

    assert proof["type"] == "HmacSha256Signature2024"
    assert proof["proofPurpose"] == "assertionMethod"
    assert proof["created"] == "2024-01-15T09:30:00.000Z"
    assert signer.verify(canonical_json(credential.unsigned_document()), proof["signatureValue"])
    assert signer.decode_jws(proof["jws"]) == build_jws_claims(credential)


def test_credential_ids_are_unique(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    assert mint(clock, parties).id != mint(clock, parties).id


def test_signing_error_becomes_signing_failure(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    class BrokenSigner(HmacSigner):
        def encode_jws(self, claims: dict) -> str:  # type: ignore[type-arg]
            raise RuntimeError("hsm offline")

    document, issuer, subject = parties

    with pytest.raises(SigningFailure, match="hsm offline"):
        CredentialIssuer(BrokenSigner(TEST_SECRET), clock).issue(document, issuer, subject)


def test_validity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CredentialIssuer(HmacSigner(TEST_SECRET), validity_days=0)


def test_verification_link_data(clock: FixedClock, parties: tuple[Document, Issuer, Subject]) -> None:
    credential = mint(clock, parties)

    data = verification_link_data(credential, "https://verify.example/")

    assert data == {
        "vcId": credential.id,
        "documentHash": digest(PASSPORT_BYTES),
        "verificationUrl": f"https://verify.example/verify/{credential.id}",
        "issuer": "did:web:digilocker:authority:EMP-001",
        "issuanceDate": "2024-01-15T09:30:00.000Z",
        "documentType": "passport",
    }
