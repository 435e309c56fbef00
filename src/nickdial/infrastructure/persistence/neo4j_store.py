"""Neo4j implementations of NicknameStore and ContactDirectory.
Graph: one Person (owner) per user; contacts are Person nodes reached through KNOWS,
whose contact_name is the name the owner saved them under.
Learned nicknames hang off the owner: (owner:Person)-[:CALLS]->(n:Nickname).
"""

import asyncio
import logging
from datetime import datetime, timezone

from neo4j.exceptions import DriverError, Neo4jError

from nickdial.application.dto import DirectoryResult
from nickdial.application.errors import DirectoryUnavailable, StoreUnavailable
from nickdial.domain import ContactEntity, DirectoryEntry
from nickdial.infrastructure.phone import dialable

logger = logging.getLogger(__name__)

_CONSTRAINT_QUERY = """
CREATE CONSTRAINT nickname_unique IF NOT EXISTS
FOR (n:Nickname) REQUIRE (n.owner_id, n.nickname) IS NODE UNIQUE
"""

_LOOKUP_QUERY = """
MATCH (n:Nickname {owner_id: $user_id, nickname: $nickname})
RETURN n.voice_number AS voice_number, n.sms_number AS sms_number
LIMIT 1
"""

_UPSERT_QUERY = """
MERGE (owner:Person {id: $user_id, registered: true})
MERGE (n:Nickname {owner_id: $user_id, nickname: $nickname})
SET n.voice_number = $voice_number,
    n.sms_number = $sms_number,
    n.updated_at = $updated_at
MERGE (owner)-[:CALLS]->(n)
"""

_CONTACTS = """
MATCH (owner:Person {id: $user_id, registered: true})-[k:KNOWS]->(p:Person)
WITH p, CASE WHEN coalesce(k.contact_name, '') <> '' THEN k.contact_name
             ELSE coalesce(p.name, '') END AS display_name
"""

_QUERY_CONTACTS = (
    _CONTACTS
    + """
WHERE toLower(display_name) STARTS WITH $needle
   OR toLower(display_name) CONTAINS $word_needle
RETURN p.id AS id, display_name, p.photo_ref AS photo_ref, p.phone_number AS phone_number
ORDER BY display_name
"""
)

_GET_CONTACT = (
    _CONTACTS
    + """
WHERE p.id = $id
RETURN p.id AS id, display_name, p.photo_ref AS photo_ref, p.phone_number AS phone_number
LIMIT 1
"""
)


def ensure_nickname_constraint(driver) -> None:
    """Create unique constraint on Nickname(owner_id, nickname) if missing."""
    with driver.session() as session:
        session.run(_CONSTRAINT_QUERY)


class Neo4jNicknameStore:
    """Stores nickname bindings in Neo4j, scoped by user_id."""

    def __init__(self, driver: object, user_id: str = "default") -> None:
        self._driver = driver
        self._user_id = user_id

    def lookup(self, nickname: str) -> ContactEntity | None:
        try:
            with self._driver.session() as session:
                record = session.run(
                    _LOOKUP_QUERY, user_id=self._user_id, nickname=nickname
                ).single()
        except (DriverError, Neo4jError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        if not record:
            return None
        return ContactEntity(
            nickname=nickname,
            voice_number=record["voice_number"] or "",
            sms_number=record["sms_number"] or "",
        )

    def upsert(self, contact: ContactEntity) -> None:
        try:
            with self._driver.session() as session:
                session.run(
                    _UPSERT_QUERY,
                    user_id=self._user_id,
                    nickname=contact.nickname,
                    voice_number=contact.voice_number,
                    sms_number=contact.sms_number,
                    updated_at=datetime.now(timezone.utc).isoformat(),
                )
        except (DriverError, Neo4jError) as exc:
            raise StoreUnavailable(str(exc)) from exc


class Neo4jContactDirectory:
    """Reads the owner's contacts as directory entries.
    A token matches a display name at its start or at the start of any word.
    """

    def __init__(
        self,
        driver: object,
        user_id: str = "default",
        *,
        default_region: str | None = None,
    ) -> None:
        self._driver = driver
        self._user_id = user_id
        self._default_region = default_region

    def _to_entry(self, record) -> DirectoryEntry:
        number = dialable(record["phone_number"], self._default_region)
        return DirectoryEntry(
            id=record["id"],
            display_name=record["display_name"],
            photo_ref=record["photo_ref"],
            voice_number=number,
            sms_number=number,
        )

    def _run(self, query: str, **params) -> list[DirectoryEntry]:
        try:
            with self._driver.session() as session:
                result = session.run(query, user_id=self._user_id, **params)
                return [self._to_entry(rec) for rec in result]
        except (DriverError, Neo4jError) as exc:
            logger.error("Contact directory query failed: %s", exc)
            raise DirectoryUnavailable(str(exc)) from exc

    async def query(self, token: str) -> DirectoryResult:
        needle = " ".join(token.lower().split())
        if not needle:
            return DirectoryResult()
        entries = await asyncio.to_thread(
            self._run, _QUERY_CONTACTS, needle=needle, word_needle=" " + needle
        )
        return DirectoryResult(entries)

    async def get(self, entry_id: str) -> DirectoryEntry | None:
        entries = await asyncio.to_thread(self._run, _GET_CONTACT, id=entry_id)
        return entries[0] if entries else None
