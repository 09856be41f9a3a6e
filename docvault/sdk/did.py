"""DID issuance, resolution and did:key helpers.

The identity registry keeps a bidirectional ``DID <-> owner key`` mapping
in the shared key-value store so identities survive restarts and are
visible to every instance. did:key helpers cover Ed25519 signing keys.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

import multibase
from nacl.signing import SigningKey, VerifyKey

from docvault.sdk.errors import AlreadyIssuedError, ConflictError, NotFoundError
from docvault.sdk.models import Clock, format_timestamp, utcnow
from docvault.sdk.store import KeyValueStore

logger = logging.getLogger(__name__)

DID_METHOD = "digilocker"
DIDS = "dids"
DID_OWNERS = "did_owners"
_ED25519_MULTICODEC = b'\xed\x01'


def normalize_owner_key(owner_key: str) -> str:
    """Trim and lower-case so one external address maps to one identity."""
    if not owner_key or not owner_key.strip():
        raise ValueError("Owner key is required")
    return owner_key.strip().lower()


def placeholder_subject_did(subject_id: str) -> str:
    """Deterministic DID for a subject that has not generated one yet."""
    return f"did:web:{DID_METHOD}:user:{subject_id}"


def placeholder_issuer_did(employer_id: str) -> str:
    return f"did:web:{DID_METHOD}:authority:{employer_id}"


class IdentityRegistry:
    """Issues and resolves DIDs for subjects and issuers."""

    def __init__(self, store: KeyValueStore, clock: Clock = utcnow) -> None:
        self.store = store
        self.clock = clock

    def issue(self, owner_key: str) -> str:
        """Generate a fresh DID for ``owner_key``.

        Raises:
            AlreadyIssuedError: the owner already holds a DID
            ConflictError: the generated DID collides with an existing one
        """
        owner = normalize_owner_key(owner_key)
        if self.store.get(DID_OWNERS, owner) is not None:
            raise AlreadyIssuedError(f"DID already issued for {owner}")

        did = f"did:{DID_METHOD}:{uuid.uuid4()}"
        record = {"owner": owner, "active": True, "created_at": format_timestamp(self.clock())}
        if not self.store.insert(DIDS, did, record):
            raise ConflictError(f"DID {did} already exists")
        if not self.store.insert(DID_OWNERS, owner, {"did": did}):
            # Lost a race for the same owner; drop our DID so it never resolves.
            self.store.delete(DIDS, did)
            raise AlreadyIssuedError(f"DID already issued for {owner}")

        logger.info(f"Issued DID {did} for {owner}")
        return did

    def resolve(self, did: str) -> str:
        """Return the owner key behind ``did``."""
        found = self.store.get(DIDS, did)
        if found is None:
            raise NotFoundError(f"DID not found: {did}")
        return found.value["owner"]

    def lookup(self, owner_key: str) -> str | None:
        """Return the DID held by ``owner_key``, if any."""
        found = self.store.get(DID_OWNERS, normalize_owner_key(owner_key))
        return found.value["did"] if found else None

    def is_active(self, did: str) -> bool:
        found = self.store.get(DIDS, did)
        return bool(found and found.value.get("active"))

    def deactivate(self, did: str) -> None:
        """Mark a DID inactive; the owner mapping is kept."""
        while True:
            found = self.store.get(DIDS, did)
            if found is None:
                raise NotFoundError(f"DID not found: {did}")
            if not found.value.get("active"):
                return
            updated = dict(found.value, active=False)
            if self.store.compare_and_swap(DIDS, did, found.version, updated):
                logger.info(f"Deactivated DID {did}")
                return


def generate_ed25519_keypair() -> tuple[SigningKey, str]:
    """Generate Ed25519 keypair and return signing key and did:key."""
    signing_key = SigningKey.generate()
    return signing_key, generate_did_key(signing_key)


def generate_did_key(signing_key: SigningKey) -> str:
    """Generate did:key from Ed25519 SigningKey."""
    if not signing_key:
        raise ValueError("Signing key is required")

    multicodec_key = _ED25519_MULTICODEC + bytes(signing_key.verify_key)
    multibase_key = multibase.encode('base58btc', multicodec_key)
    return f"did:key:{multibase_key.decode('utf-8')}"


def did_key_to_public_key(did_key: str) -> VerifyKey:
    """Parse did:key back to VerifyKey."""
    if not validate_did_key_format(did_key):
        raise ValueError(f"Invalid did:key format: {did_key}")

    multicodec_bytes = multibase.decode(did_key[8:])
    if len(multicodec_bytes) < 34 or multicodec_bytes[:2] != _ED25519_MULTICODEC:
        raise ValueError("Invalid Ed25519 multicodec format")
    return VerifyKey(multicodec_bytes[2:])


def validate_did_key_format(did_key: str) -> bool:
    """Validate did:key format."""
    if not isinstance(did_key, str) or not did_key.startswith("did:key:z6Mk"):
        return False

    try:
        multibase.decode(did_key[8:])
        return True
    except Exception:
        return False


def resolve_did_document(did_key: str) -> dict[str, Any]:
    """Generate DID document from did:key.

    Raises:
        ValueError: the DID does not encode an Ed25519 public key
    """
    did_key_to_public_key(did_key)

    key_id = f"{did_key}#{did_key.split(':')[-1]}"
    return {
        "@context": [
            "https://www.w3.org/ns/did/v1",
            "https://w3id.org/security/suites/ed25519-2020/v1"
        ],
        "id": did_key,
        "verificationMethod": [{
            "id": key_id,
            "type": "Ed25519VerificationKey2020",
            "controller": did_key,
            "publicKeyMultibase": did_key[8:]
        }],
        "authentication": [key_id],
        "assertionMethod": [key_id]
    }

