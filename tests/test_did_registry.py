"""Test DID issuance, resolution and did:key helpers."""

from __future__ import annotations

import uuid

import pytest
from nacl.signing import SigningKey, VerifyKey

from docvault.sdk.did import (
    IdentityRegistry,
    did_key_to_public_key,
    generate_did_key,
    generate_ed25519_keypair,
    normalize_owner_key,
    placeholder_issuer_did,
    placeholder_subject_did,
    resolve_did_document,
    validate_did_key_format,
)
from docvault.sdk.errors import AlreadyIssuedError, ConflictError, NotFoundError
from docvault.sdk.store import MemoryStore
from tests.helpers import build_scenario

WALLET = "0xAbCdEf0000000000000000000000000000000042"


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def registry(store: MemoryStore) -> IdentityRegistry:
    return IdentityRegistry(store)


def test_issue_and_resolve(registry: IdentityRegistry) -> None:
    """Issued DID resolves back to the normalised owner."""
    did = registry.issue(WALLET)

    assert did.startswith("did:digilocker:")
    assert registry.resolve(did) == WALLET.lower()
    assert registry.lookup(WALLET) == did
    assert registry.is_active(did) is True


def test_issue_twice_fails(registry: IdentityRegistry) -> None:
    """An owner holds at most one DID, regardless of address case."""
    registry.issue(WALLET)

    with pytest.raises(AlreadyIssuedError):
        registry.issue(WALLET.upper())
    with pytest.raises(AlreadyIssuedError):
        registry.issue(f"  {WALLET.lower()} ")


def test_distinct_owners_get_distinct_dids(registry: IdentityRegistry) -> None:
    first = registry.issue("user:1")
    second = registry.issue("user:2")

    assert first != second
    assert registry.resolve(first) == "user:1"
    assert registry.resolve(second) == "user:2"


def test_resolve_unknown_did(registry: IdentityRegistry) -> None:
    with pytest.raises(NotFoundError):
        registry.resolve("did:digilocker:missing")
    assert registry.is_active("did:digilocker:missing") is False
    assert registry.lookup("nobody") is None


def test_registry_survives_new_instance(store: MemoryStore) -> None:
    """State lives in the store, not in the registry object."""
    did = IdentityRegistry(store).issue(WALLET)

    restarted = IdentityRegistry(store)
    assert restarted.resolve(did) == WALLET.lower()
    with pytest.raises(AlreadyIssuedError):
        restarted.issue(WALLET)


def test_deactivate(registry: IdentityRegistry) -> None:
    did = registry.issue(WALLET)

    registry.deactivate(did)
    registry.deactivate(did)

    assert registry.is_active(did) is False
    assert registry.resolve(did) == WALLET.lower()


def test_normalize_owner_key_rejects_blank() -> None:
    with pytest.raises(ValueError, match="Owner key is required"):
        normalize_owner_key("   ")


def test_placeholder_dids_are_deterministic() -> None:
    assert placeholder_subject_did("abc") == "did:web:digilocker:user:abc"
    assert placeholder_issuer_did("EMP-1") == "did:web:digilocker:authority:EMP-1"


def test_subject_did_assigned_once() -> None:
    """Custody client stores the DID on the subject and refuses a second one."""
    scenario = build_scenario()
    client = scenario.client

    did = client.generate_subject_did(scenario.subject.id)

    assert client.repository.subjects.get(scenario.subject.id).did == did
    assert client.identities.resolve(did) == scenario.subject.address
    with pytest.raises(AlreadyIssuedError):
        client.generate_subject_did(scenario.subject.id)


def test_issuer_did_uses_employer_key() -> None:
    scenario = build_scenario()

    did = scenario.client.generate_issuer_did(scenario.issuer.id)

    assert scenario.client.identities.resolve(did) == "authority:emp-001"


def test_generate_did_unknown_subject() -> None:
    with pytest.raises(NotFoundError):
        build_scenario().client.generate_subject_did("missing")


def test_did_key_round_trip() -> None:
    """Ed25519 key -> did:key -> key is lossless."""
    signing_key, did_key = generate_ed25519_keypair()

    assert did_key.startswith("did:key:z6Mk")
    assert generate_did_key(signing_key) == did_key
    verify_key = did_key_to_public_key(did_key)
    assert isinstance(verify_key, VerifyKey)
    assert verify_key == signing_key.verify_key


def test_validate_did_key_format() -> None:
    _, did_key = generate_ed25519_keypair()

    assert validate_did_key_format(did_key) is True
    assert validate_did_key_format("not-a-did") is False
    assert validate_did_key_format("did:web:example.com") is False
    assert validate_did_key_format("") is False


def test_resolve_did_document() -> None:
    did_key = generate_did_key(SigningKey.generate())

    did_doc = resolve_did_document(did_key)

    vm = did_doc["verificationMethod"][0]
    assert did_doc["id"] == did_key
    assert vm["type"] == "Ed25519VerificationKey2020"
    assert vm["controller"] == did_key
    assert did_doc["assertionMethod"] == [vm["id"]]
    with pytest.raises(ValueError):
        resolve_did_document("did:digilocker:123")


def test_resolve_did_document_rejects_truncated_key() -> None:
    """A did:key must decode to a full Ed25519 public key."""
    _, did_key = generate_ed25519_keypair()

    with pytest.raises(ValueError):
        resolve_did_document(did_key[:20])


def test_colliding_did_is_never_shared(registry: IdentityRegistry, monkeypatch: pytest.MonkeyPatch) -> None:
    """Two owners drawing the same identifier do not end up behind one DID."""
    fixed = uuid.UUID("00000000-0000-4000-8000-000000000001")
    monkeypatch.setattr(uuid, "uuid4", lambda: fixed)

    did = registry.issue("user:1")
    with pytest.raises(ConflictError):
        registry.issue("user:2")

    assert registry.resolve(did) == "user:1"
    assert registry.lookup("user:2") is None
