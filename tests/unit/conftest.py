"""Pytest configuration and fixtures for unit tests."""

import pytest

from tests.unit.mocks import InMemoryDocumentStore
from todosync.core.auth import LocalAuthGate
from todosync.services.sync_controller import SyncController


@pytest.fixture
def in_memory_store():
    """Provides a fresh InMemoryDocumentStore for each test."""
    return InMemoryDocumentStore()


@pytest.fixture
def patched_store(monkeypatch, in_memory_store):
    """Patches todosync.core.db_client functions to use InMemoryDocumentStore."""
    monkeypatch.setattr("todosync.core.db_client.add_document", in_memory_store.add_document)
    monkeypatch.setattr("todosync.core.db_client.get_document", in_memory_store.get_document)
    monkeypatch.setattr("todosync.core.db_client.list_documents", in_memory_store.list_documents)
    monkeypatch.setattr("todosync.core.db_client.update_document", in_memory_store.update_document)
    monkeypatch.setattr("todosync.core.db_client.delete_document", in_memory_store.delete_document)
    monkeypatch.setattr("todosync.core.db_client.list_collections", in_memory_store.list_collections)

    return in_memory_store


@pytest.fixture
def auth():
    return LocalAuthGate()


@pytest.fixture
async def controller(patched_store, auth):
    """SyncController subscribed to a fresh auth gate, backed by the in-memory store."""
    sync = SyncController(auth=auth)
    await sync.start()
    yield sync
    sync.close()
