"""Integration tests for the Neo4j store and directory. Require Docker
(testcontainers); skipped when no container can be started."""

import pytest

from nickdial.domain import ContactEntity
from nickdial.infrastructure import (
    Neo4jContactDirectory,
    Neo4jNicknameStore,
    ensure_nickname_constraint,
)


@pytest.fixture(scope="session")
def neo4j_driver():
    from testcontainers.neo4j import Neo4jContainer

    try:
        container = Neo4jContainer().start()
    except Exception as exc:  # noqa: BLE001
        pytest.skip(f"Neo4j container unavailable: {exc}")
    driver = container.get_driver()
    try:
        yield driver
    finally:
        driver.close()
        container.stop()


@pytest.fixture
def clean_neo4j(neo4j_driver):
    """Clear the graph before each test so tests are independent."""
    with neo4j_driver.session() as session:
        session.run("MATCH (n) DETACH DELETE n")
    ensure_nickname_constraint(neo4j_driver)
    yield neo4j_driver


def _add_contact(driver, user_id, person_id, contact_name, phone, node_name=""):
    with driver.session() as session:
        session.run(
            """
            MERGE (owner:Person {id: $user_id, registered: true})
            CREATE (p:Person {id: $person_id, name: $node_name, phone_number: $phone,
                              registered: false})
            CREATE (owner)-[:KNOWS {contact_name: $contact_name}]->(p)
            """,
            user_id=user_id,
            person_id=person_id,
            node_name=node_name,
            phone=phone,
            contact_name=contact_name,
        )


def test_store_upsert_and_lookup(clean_neo4j):
    store = Neo4jNicknameStore(clean_neo4j, user_id="default")
    mary = ContactEntity(nickname="mary", voice_number="+12025551234", sms_number="+12025551234")

    assert store.lookup("mary") is None
    store.upsert(mary)
    assert store.lookup("mary") == mary
    assert store.lookup("Mary") is None

    store.upsert(ContactEntity(nickname="mary", voice_number="1", sms_number="2"))
    assert store.lookup("mary").sms_number == "2"


def test_store_is_scoped_by_user(clean_neo4j):
    Neo4jNicknameStore(clean_neo4j, user_id="u1").upsert(
        ContactEntity(nickname="mom", voice_number="1", sms_number="1")
    )
    assert Neo4jNicknameStore(clean_neo4j, user_id="u2").lookup("mom") is None


@pytest.mark.asyncio
async def test_directory_query_matches_contact_names(clean_neo4j):
    _add_contact(clean_neo4j, "default", "p1", "John Smith", "+1 202 555 1234")
    _add_contact(clean_neo4j, "default", "p2", "", "555-0102", node_name="Joan Smithers")
    _add_contact(clean_neo4j, "other", "p3", "John Other", "555-0103")
    directory = Neo4jContactDirectory(clean_neo4j, user_id="default")

    result = await directory.query("jo")
    assert sorted(e.id for e in result) == ["p1", "p2"]

    result = await directory.query("smith")
    assert sorted(e.id for e in result) == ["p1", "p2"]

    assert len(await directory.query("ohn")) == 0

    entry = await directory.get("p1")
    assert entry.display_name == "John Smith"
    assert entry.voice_number == "+12025551234"
    assert await directory.get("p3") is None
