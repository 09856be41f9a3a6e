"""Credential signing capabilities.

``Signer`` and ``SignatureVerifier`` form the pair the credential issuer
and verifier depend on. ``HmacSigner`` is the shared-secret scheme;
``Ed25519Signer`` binds signatures to a did:key and can replace it
without touching issuer or verifier code.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any, Protocol

import jwt
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey

from docvault.sdk.did import generate_did_key

# Binding claims are checked explicitly; time claims are judged by the verifier's clock.
_JWS_OPTIONS = {"verify_exp": False, "verify_iat": False, "verify_nbf": False}


class Signer(Protocol):
    algorithm: str
    proof_type: str

    def verification_method(self, issuer_did: str) -> str: ...

    def sign(self, payload: bytes) -> str: ...

    def encode_jws(self, claims: dict[str, Any]) -> str: ...


class SignatureVerifier(Protocol):
    def verify(self, payload: bytes, signature: str) -> bool: ...

    def decode_jws(self, token: str) -> dict[str, Any]:
        """Return verified JWS claims; raises ``jwt.InvalidTokenError`` otherwise."""
        ...


class HmacSigner:
    """HMAC-SHA256 over a process-wide shared secret."""

    algorithm = "HS256"
    proof_type = "HmacSha256Signature2024"

    def __init__(self, secret: str | bytes, key_id: str = "keys-1") -> None:
        if not secret:
            raise ValueError("Signing secret is required")
        self._secret = secret.encode('utf-8') if isinstance(secret, str) else bytes(secret)
        self.key_id = key_id

    def verification_method(self, issuer_did: str) -> str:
        return f"{issuer_did}#{self.key_id}"

    def sign(self, payload: bytes) -> str:
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    def verify(self, payload: bytes, signature: str) -> bool:
        if not signature:
            return False
        return hmac.compare_digest(self.sign(payload), signature.lower())

    def encode_jws(self, claims: dict[str, Any]) -> str:
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def decode_jws(self, token: str) -> dict[str, Any]:
        return jwt.decode(token, self._secret, algorithms=[self.algorithm], options=_JWS_OPTIONS)  # type: ignore[no-any-return]


class Ed25519Signer:
    """Ed25519 signatures whose verification method is the signer's did:key."""

    algorithm = "EdDSA"
    proof_type = "Ed25519Signature2020"

    def __init__(self, signing_key: SigningKey) -> None:
        if not signing_key:
            raise ValueError("Signing key is required")
        self._signing_key = signing_key
        self.did_key = generate_did_key(signing_key)

    @classmethod
    def from_seed(cls, seed_hex: str) -> Ed25519Signer:
        return cls(SigningKey(bytes.fromhex(seed_hex)))

    def verification_method(self, issuer_did: str) -> str:
        return f"{self.did_key}#{self.did_key.split(':')[-1]}"

    def sign(self, payload: bytes) -> str:
        return self._signing_key.sign(payload).signature.hex()

    def verify(self, payload: bytes, signature: str) -> bool:
        try:
            self._signing_key.verify_key.verify(payload, bytes.fromhex(signature))
            return True
        except (BadSignatureError, ValueError):
            return False

    def encode_jws(self, claims: dict[str, Any]) -> str:
        return jwt.encode(claims, _signing_key_to_pem(self._signing_key), algorithm=self.algorithm)

    def decode_jws(self, token: str) -> dict[str, Any]:
        public_key_pem = _verify_key_to_pem(self._signing_key)
        return jwt.decode(token, public_key_pem, algorithms=[self.algorithm], options=_JWS_OPTIONS)  # type: ignore[no-any-return]


def _signing_key_to_pem(signing_key: SigningKey) -> bytes:
    """Convert nacl SigningKey to PEM format for JWT."""
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

    crypto_key = Ed25519PrivateKey.from_private_bytes(bytes(signing_key))
    return crypto_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def _verify_key_to_pem(signing_key: SigningKey) -> bytes:
    """Convert the nacl public half to PEM format for JWT."""
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

    crypto_key = Ed25519PublicKey.from_public_bytes(bytes(signing_key.verify_key))
    return crypto_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
