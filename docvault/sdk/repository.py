"""Typed record access over a KeyValueStore."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

from pydantic import BaseModel

from docvault.sdk.errors import ConflictError, NotFoundError
from docvault.sdk.models import Credential, Document, Issuer, Subject
from docvault.sdk.store import KeyValueStore

M = TypeVar("M", bound=BaseModel)

OWNER_KEYS = "owner_keys"


class Collection(Generic[M]):
    """One namespace of the store holding records of a single model."""

    def __init__(self, store: KeyValueStore, namespace: str, model: type[M], label: str) -> None:
        self.store = store
        self.namespace = namespace
        self.model = model
        self.label = label

    def add(self, record: M) -> M:
        if not self.store.insert(self.namespace, record.id, record.model_dump(mode="json")):  # type: ignore[attr-defined]
            raise ConflictError(f"{self.label} already exists: {record.id}")  # type: ignore[attr-defined]
        return record

    def load(self, record_id: str) -> tuple[M, int]:
        """Return the record and the version to pass back to ``swap``."""
        found = self.store.get(self.namespace, record_id)
        if found is None:
            raise NotFoundError(f"{self.label} not found: {record_id}")
        return self.model.model_validate(found.value), found.version

    def get(self, record_id: str) -> M:
        return self.load(record_id)[0]

    def swap(self, record: M, expected_version: int) -> bool:
        return self.store.compare_and_swap(
            self.namespace, record.id, expected_version, record.model_dump(mode="json")  # type: ignore[attr-defined]
        )

    def remove(self, record_id: str) -> bool:
        return self.store.delete(self.namespace, record_id)

    def all(self) -> Iterator[M]:
        for _, value in self.store.scan(self.namespace):
            yield self.model.model_validate(value)


class Repository:
    """Subjects, issuers, documents and credentials sharing one store."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self.subjects = Collection(store, "subjects", Subject, "Subject")
        self.issuers = Collection(store, "issuers", Issuer, "Issuer")
        self.documents = Collection(store, "documents", Document, "Document")
        self.credentials = Collection(store, "credentials", Credential, "Credential")

    def reserve_owner(self, owner_key: str, record_id: str) -> bool:
        """Claim an owner key for one subject or issuer; ``False`` if already taken."""
        return self.store.insert(OWNER_KEYS, owner_key, {"record_id": record_id})

    def release_owner(self, owner_key: str) -> bool:
        return self.store.delete(OWNER_KEYS, owner_key)
