# tests/test_integrations.py
"""
Integration tests for NeoGM.

Tests the complete flow from entity declaration through the NeoGM facade,
its repositories and the engine, against the in-memory fake store.
"""

from datetime import date

import pytest

from neogm import (
    MetadataRegistry,
    NeoGM,
    NodeEntity,
    NotFoundError,
    Property,
    Relationship,
    ValidationError,
    node,
)


integration_registry = MetadataRegistry()


@node("Person")
class Person(NodeEntity, registry=integration_registry):
    name = Property("string", required=True)
    age = Property("integer")
    birthday = Property("date", transformer={"to": date.isoformat, "from": date.fromisoformat})
    employer = Relationship("WORKS_FOR", lambda: Company)


@node("Company")
class Company(NodeEntity, registry=integration_registry):
    name = Property("string", required=True, unique=True)


@node("Item")
class Item(NodeEntity, registry=integration_registry):
    name = Property("string")
    category = Property("string", indexed=True)


@pytest.fixture
def neogm(fake_engine) -> NeoGM:
    return NeoGM(fake_engine)


@pytest.mark.asyncio
class TestPersonWorkflow:
    """Complete entity lifecycle through the facade."""

    async def test_create_and_fetch(self, neogm):
        people = neogm.get_repository(Person)

        alice = await people.create({"name": "Alice", "age": 30})
        await alice.save()

        fetched = await people.find_by_id(alice.get_id())
        assert fetched is not alice
        assert fetched.name == "Alice"
        assert fetched.age == 30

    async def test_missing_required_field(self, neogm, fake_engine):
        people = neogm.get_repository(Person)
        nameless = await people.create({"age": 5})

        with pytest.raises(ValidationError, match="name"):
            await nameless.save()
        assert fake_engine.sessions == []

    async def test_update_path(self, neogm):
        people = neogm.get_repository(Person)
        person = await people.create({"name": "Bob", "age": 30})
        await person.save()
        person_id = person.get_id()

        person.age = 31
        await person.save()

        assert person.get_id() == person_id
        assert (await people.find_by_id(person_id)).age == 31
        assert await people.count() == 1

    async def test_filtered_find(self, neogm):
        people = neogm.get_repository(Person)
        for name, age in (("A", 25), ("B", 30), ("C", 30)):
            await (await people.create(name=name, age=age)).save()

        assert len(await people.find(where={"age": 30})) == 2

    async def test_count_and_exists(self, neogm):
        items = neogm.get_repository(Item)
        for name, category in (("first", "x"), ("second", "x"), ("third", "y")):
            await (await items.create(name=name, category=category)).save()

        assert await items.count({"category": "x"}) == 2
        assert await items.exists({"category": "nonexistent"}) is False
        assert await items.exists({"category": "y"}) is True

    async def test_transformed_property_round_trip(self, neogm, store):
        people = neogm.get_repository(Person)
        person = await people.create({"name": "Dora", "birthday": date(1990, 4, 12)})
        await person.save()

        assert store.nodes[person.get_id()]["properties"]["birthday"] == "1990-04-12"
        fetched = await people.find_by_id(person.get_id())
        assert fetched.birthday == date(1990, 4, 12)
        assert fetched.serialize()["birthday"] == date(1990, 4, 12)

    async def test_find_versus_reload_after_delete(self, neogm):
        people = neogm.get_repository(Person)
        person = await people.create({"name": "Eve"})
        await person.save()
        stale = await people.find_by_id(person.get_id())

        assert await people.delete(person) is True

        assert await people.find_by_id(stale.get_id()) is None
        with pytest.raises(NotFoundError):
            await stale.reload()

    async def test_relationship_pointer_is_declared_only(self, neogm, store):
        techcorp = neogm.create_entity(Company, name="TechCorp")
        await techcorp.save()
        alice = neogm.create_entity(Person, name="Alice", employer=techcorp)
        await alice.save()

        assert integration_registry.list_relationship_keys(Person) == ["employer"]
        assert "employer" not in store.nodes[alice.get_id()]["properties"]
        assert len(store.nodes) == 2

    async def test_every_operation_closes_its_session(self, neogm, fake_engine):
        people = neogm.get_repository(Person)
        person = await people.create({"name": "Finn"})
        await person.save()
        await person.reload()
        await people.find_one({"name": "Finn"})
        await people.count()
        await people.exists({"name": "Finn"})
        await people.delete(person)

        assert len(fake_engine.sessions) == 6
        for session in fake_engine.sessions:
            session.close.assert_awaited_once()
