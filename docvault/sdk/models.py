"""Pydantic models for custody data structures.

Records round-trip through the key-value store as JSON, so every model
dumps with ``model_dump(mode="json")`` and loads with ``model_validate``.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

VC_CONTEXT = ["https://www.w3.org/2018/credentials/v1"]
VC_TYPES = ["VerifiableCredential", "DocumentVerificationCredential"]
VC_SCHEMA = {
    "id": "https://digilocker.example/schemas/document-verification-v1.json",
    "type": "JsonSchemaValidator2018",
}

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def new_id() -> str:
    return uuid.uuid4().hex


class DocumentType(str, Enum):
    """Declared document types accepted at upload."""
    AADHAR = "aadhar"
    PAN = "pan"
    BIRTH = "birth"
    VOTER = "voter"
    CERTIFICATE = "certificate"
    LICENSE = "license"
    PASSPORT = "passport"
    DEGREE = "degree"
    OTHER = "other"


class Department(str, Enum):
    """Authority jurisdictions; a department verifies the document type of the same name."""
    AADHAR = "aadhar"
    PAN = "pan"
    LICENSE = "license"
    PASSPORT = "passport"
    DEGREE = "degree"
    OTHER = "other"


class DocumentState(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    REVOKED = "revoked"


class CredentialStatus(str, Enum):
    """Credential status; EXPIRED is only ever derived at read time."""
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


class VerdictOutcome(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    NOT_FOUND = "not_found"


class Subject(BaseModel):
    """Citizen owning documents."""

    id: str = Field(default_factory=new_id)
    username: str = Field(..., min_length=1)
    address: str | None = Field(default=None, description="External wallet address")
    email: str | None = None
    did: str | None = Field(default=None, description="Assigned at most once")
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def owner_key(self) -> str:
        """Identity registry key: the external address when present."""
        return self.address or f"user:{self.id}"


class Issuer(BaseModel):
    """Departmental authority."""

    id: str = Field(default_factory=new_id)
    employer_id: str = Field(..., min_length=1)
    department: Department
    full_name: str = Field(..., min_length=1)
    designation: str = ""
    is_active: bool = True
    did: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def owner_key(self) -> str:
        return f"authority:{self.employer_id}"

    def covers(self, document_type: DocumentType) -> bool:
        return self.department.value == document_type.value


class Document(BaseModel):
    """Uploaded document record."""

    id: str = Field(default_factory=new_id)
    subject_id: str
    document_type: DocumentType
    digest: str = Field(..., min_length=64, max_length=64)
    locator: str
    file_name: str = ""
    file_size: int = 0
    file_type: str = "application/octet-stream"
    description: str | None = Field(default=None, max_length=500)
    state: DocumentState = DocumentState.PENDING
    verified_by: str | None = None
    verified_at: datetime | None = None
    verification_digest: str | None = None
    credential_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_verified(self) -> bool:
        return self.state is DocumentState.VERIFIED


class CredentialProof(BaseModel):
    type: str
    created: str
    verification_method: str
    proof_purpose: str = "assertionMethod"
    jws: str
    signature_value: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "created": self.created,
            "verificationMethod": self.verification_method,
            "proofPurpose": self.proof_purpose,
            "jws": self.jws,
            "signatureValue": self.signature_value,
        }


class Credential(BaseModel):
    """Stored verifiable credential plus its custody bookkeeping."""

    id: str
    issuer: str = Field(..., description="Issuer DID")
    issuance_date: datetime
    expiration_date: datetime
    credential_subject: dict[str, Any]
    proof: CredentialProof | None = None
    status: CredentialStatus = CredentialStatus.ACTIVE
    revoked_at: datetime | None = None
    document_id: str
    subject_id: str
    issuer_id: str

    @property
    def subject_did(self) -> str:
        return self.credential_subject["id"]

    @property
    def document_digest(self) -> str:
        return self.credential_subject["documentHash"]

    def effective_status(self, now: datetime) -> CredentialStatus:
        """Stored status with expiry applied."""
        if self.status is CredentialStatus.REVOKED:
            return CredentialStatus.REVOKED
        if now > self.expiration_date:
            return CredentialStatus.EXPIRED
        return self.status

    def unsigned_document(self) -> dict[str, Any]:
        """W3C credential document without its proof; this is what gets signed."""
        return {
            "@context": list(VC_CONTEXT),
            "type": list(VC_TYPES),
            "id": self.id,
            "issuer": self.issuer,
            "issuanceDate": format_timestamp(self.issuance_date),
            "expirationDate": format_timestamp(self.expiration_date),
            "credentialSubject": dict(self.credential_subject),
            "credentialSchema": dict(VC_SCHEMA),
        }

    def to_vc(self) -> dict[str, Any]:
        """External W3C-shaped representation."""
        vc = self.unsigned_document()
        if self.proof:
            vc["proof"] = self.proof.to_dict()
        return vc


class VerificationOutcome(BaseModel):
    """Result of an authority submitting original bytes."""

    document: Document
    matched: bool
    candidate_digest: str
    credential: Credential | None = None


class RevocationOutcome(BaseModel):
    credential_id: str
    document_id: str
    revoked_at: datetime
    already_revoked: bool = False


class Verdict(BaseModel):
    """Explainable verification verdict for a credential id."""

    credential_id: str
    outcome: VerdictOutcome
    valid: bool = False
    signature_valid: bool = False
    expired: bool = False
    active: bool = False
    bound: bool = False
    reasons: list[str] = Field(default_factory=list)
    status: CredentialStatus | None = None
    checked_at: datetime
