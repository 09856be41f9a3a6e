"""Test helper functions for DRY code and simplified test patterns.

Provides a controllable clock and a wired custody client with one subject
and one passport authority, so scenario tests read as the flow they check.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from docvault.sdk.custody import CustodyClient
from docvault.sdk.models import Issuer, Subject
from docvault.sdk.signing import HmacSigner
from docvault.sdk.store import KeyValueStore, MemoryStore

TEST_SECRET = "docvault-test-signing-secret-0123456789"
PASSPORT_BYTES = b"%PDF-1.7 passport scan of Alice Smith"


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@dataclass
class Scenario:
    client: CustodyClient
    clock: FixedClock
    subject: Subject
    issuer: Issuer


def build_client(
    store: KeyValueStore | None = None,
    clock: FixedClock | None = None,
    secret: str = TEST_SECRET,
    allow_resubmit_rejected: bool = True
) -> CustodyClient:
    """Create a custody client over an in-memory store."""
    return CustodyClient(
        store or MemoryStore(),
        HmacSigner(secret),
        clock=clock or FixedClock(),
        allow_resubmit_rejected=allow_resubmit_rejected,
    )


def build_scenario(allow_resubmit_rejected: bool = True) -> Scenario:
    """Client with a registered subject and an active passport authority."""
    clock = FixedClock()
    client = build_client(clock=clock, allow_resubmit_rejected=allow_resubmit_rejected)
    subject = client.register_subject("alice", address="0xAbC0000000000000000000000000000000000001")
    issuer = client.register_issuer("EMP-001", "passport", "Passport Office Pune", "Officer")
    return Scenario(client, clock, subject, issuer)


def flip_bit(data: bytes, index: int = 0) -> bytes:
    """Return a copy of ``data`` with the lowest bit of one byte flipped."""
    mutated = bytearray(data)
    mutated[index] ^= 0x01
    return bytes(mutated)
