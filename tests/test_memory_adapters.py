"""Tests for the in-memory store, directory and permission gate."""

import pytest

from nickdial.application import DirectoryResult, DirectoryUnavailable, PermissionDenied
from nickdial.domain import ContactEntity, DirectoryEntry
from nickdial.infrastructure import (
    InMemoryContactDirectory,
    InMemoryNicknameStore,
    StaticPermissionGate,
    display_name_matches,
)


def _directory(**kwargs) -> InMemoryContactDirectory:
    return InMemoryContactDirectory(
        [
            DirectoryEntry(id="1", display_name="John Smith", voice_number="+1 202 555 1234"),
            DirectoryEntry(id="2", display_name="Johnny Appleseed", voice_number="555-0102"),
            DirectoryEntry(id="3", display_name="Mary Jones", voice_number="555-0103"),
        ],
        **kwargs,
    )


def test_store_lookup_is_exact_and_case_sensitive():
    store = InMemoryNicknameStore()
    mom = ContactEntity(nickname="Mom", voice_number="555-0001", sms_number="555-0001")
    store.upsert(mom)

    assert store.lookup("Mom") == mom
    assert store.lookup("mom") is None
    assert store.lookup("Mo") is None


def test_store_upsert_overwrites():
    store = InMemoryNicknameStore()
    store.upsert(ContactEntity(nickname="mom", voice_number="1", sms_number="1"))
    store.upsert(ContactEntity(nickname="mom", voice_number="2", sms_number="3"))

    assert store.lookup("mom") == ContactEntity(nickname="mom", voice_number="2", sms_number="3")
    assert len(store.list_all()) == 1


def test_contact_entity_requires_nickname():
    with pytest.raises(ValueError):
        ContactEntity(nickname=" ", voice_number="1", sms_number="1")


def test_display_name_matches_prefix_and_word_starts():
    assert display_name_matches("John Smith", "jo")
    assert display_name_matches("John Smith", "SMITH")
    assert display_name_matches("John Smith Jr", "john smith")
    assert not display_name_matches("John Smith", "ohn")
    assert not display_name_matches("John Smith", "john smithers")
    assert not display_name_matches("John Smith", "  ")


@pytest.mark.asyncio
async def test_directory_query_returns_matching_entries():
    directory = _directory()

    result = await directory.query("john")

    assert isinstance(result, DirectoryResult)
    assert [e.id for e in result] == ["1", "2"]
    assert len(await directory.query("jones")) == 1
    assert len(await directory.query("zed")) == 0
    assert directory.calls == ["john", "jones", "zed"]


@pytest.mark.asyncio
async def test_directory_normalizes_numbers_and_fills_sms():
    directory = _directory()

    entry = await directory.get("1")

    assert entry.voice_number == "+12025551234"
    assert entry.to_contact("boss").sms_number == "+12025551234"
    assert (await directory.get("2")).voice_number == "555-0102"
    assert await directory.get("404") is None


@pytest.mark.asyncio
async def test_directory_failures():
    with pytest.raises(DirectoryUnavailable):
        await _directory(available=False).query("john")
    with pytest.raises(PermissionDenied):
        await _directory(permitted=False).get("1")


def test_directory_result_close_is_idempotent():
    closed = []
    result = DirectoryResult([], on_close=lambda: closed.append(True))

    result.close()
    result.close()

    assert result.closed is True
    assert closed == [True]


@pytest.mark.asyncio
async def test_static_permission_gate():
    gate = StaticPermissionGate(granted=False, answer=True)
    assert gate.has_permission() is False
    assert await gate.request_permission() is True
    assert gate.has_permission() is True
    assert gate.requests == 1
