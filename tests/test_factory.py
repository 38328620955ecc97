"""Tests for ``tinyrecord.factory`` — finders, bulk writes and dynamic helpers."""

from __future__ import annotations

import pytest

from tinyrecord.errors import ModelError, UnknownMethodError
from tinyrecord.factory import Factory
from tinyrecord.model import Model


class Contact(Model):
    table = "contact"


class EmailAddress(Model):
    primary_key = "address"


@pytest.fixture
def contacts(db):
    factory = db.factory(Contact)
    for name, email in [("ann", "ann@test.com"), ("bob", "bob@test.com"), ("cid", "shared@test.com"), ("dee", "shared@test.com")]:
        factory.insert({"name": name, "email": email})
    return factory


class TestDefinition:
    def test_model_class(self, db):
        factory = Factory(db, Contact)
        assert factory.get_table() == "contact"
        assert factory.get_pk() == "id"
        assert factory.model_class is Contact

    def test_table_descriptor(self, db):
        factory = db.factory("@contact")
        assert factory.get_table() == "contact"
        assert factory.model_class is Model

    def test_snake_case_default_table(self, db):
        factory = db.factory(EmailAddress)
        assert factory.get_table() == "email_address"
        assert factory.get_pk() == "address"

    def test_pk_override(self, db):
        assert db.factory("@contact", pk="name").get_pk() == "name"

    @pytest.mark.parametrize("descriptor", ["contact", "@"])
    def test_invalid_descriptor(self, db, descriptor):
        with pytest.raises(ModelError):
            db.factory(descriptor)

    def test_create(self, db):
        contact = db.factory(Contact).create({"name": "x"})
        assert isinstance(contact, Contact)
        assert contact.is_new()
        assert contact.save() == 1

    def test_map(self, db):
        record = db.factory("@contact").map({"id": 5, "name": "x"})
        assert not record.is_new()
        assert record.get_table() == "contact"
        assert record.get_raw("id") == 5


class TestReads:
    def test_count(self, contacts):
        assert contacts.count() == 4
        assert contacts.count("name = :name", {"name": "ann"}) == 1

    def test_count_by(self, contacts):
        assert contacts.count_by("email", "shared@test.com") == 2

    def test_find(self, contacts):
        contact = contacts.find(2)
        assert isinstance(contact, Contact)
        assert contact["name"] == "bob"
        assert contacts.find(99) is None

    def test_find_all(self, contacts):
        assert [c["name"] for c in contacts.find_all()] == ["ann", "bob", "cid", "dee"]

    def test_find_one(self, contacts):
        assert contacts.find_one("email = :email", {"email": "shared@test.com"}) is not None
        assert contacts.find_one("name = :name", {"name": "zed"}) is None

    def test_find_one_by(self, contacts):
        assert contacts.find_one_by("name", "cid")["id"] == 3

    def test_find_many(self, contacts):
        found = contacts.find_many("email = :email", {"email": "shared@test.com"}, order_by="name DESC")
        assert [c["name"] for c in found] == ["dee", "cid"]

    def test_find_many_limit_offset(self, contacts):
        found = contacts.find_many(order_by="id", limit=2, offset=1)
        assert [c["name"] for c in found] == ["bob", "cid"]

    def test_find_many_by(self, contacts):
        assert len(contacts.find_many_by("email", "shared@test.com")) == 2
        assert contacts.find_many_by("email", "nobody@test.com") == []


class TestWrites:
    def test_update(self, contacts):
        assert contacts.update({"email": "x"}, "name = :name", {"name": "ann"}) == 1
        assert contacts.find(1)["email"] == "x"

    def test_update_by(self, contacts):
        assert contacts.update_by("email", "shared@test.com", {"email": "new@test.com"}) == 2
        assert contacts.count_by("email", "new@test.com") == 2

    def test_update_by_pk(self, contacts):
        assert contacts.update_by_pk(2, {"name": "robert"}) == 1
        assert contacts.find(2)["name"] == "robert"

    def test_delete(self, contacts):
        assert contacts.delete("id > :id", {"id": 2}) == 2
        assert contacts.count() == 2

    def test_delete_by(self, contacts):
        assert contacts.delete_by("email", "shared@test.com") == 2

    def test_delete_by_pk(self, contacts):
        assert contacts.delete_by_pk(1) == 1
        assert contacts.find(1) is None

    def test_write_failure(self, db):
        assert db.factory("@missing").insert({"a": 1}) is None


class TestCompositeKeys:
    @pytest.fixture
    def memberships(self, db):
        db.exec("CREATE TABLE membership (team TEXT, member TEXT, role TEXT, PRIMARY KEY (team, member))")
        factory = db.factory("@membership", pk=("team", "member"))
        factory.insert({"team": "x", "member": "a", "role": "dev"})
        factory.insert({"team": "x", "member": "b", "role": "ops"})
        return factory

    def test_find_by_mapping(self, memberships):
        assert memberships.find_by_pk({"team": "x", "member": "b"})["role"] == "ops"

    def test_find_by_sequence(self, memberships):
        assert memberships.find_by_pk(("x", "a"))["role"] == "dev"

    def test_update_and_delete_by_pk(self, memberships):
        assert memberships.update_by_pk(("x", "a"), {"role": "lead"}) == 1
        assert memberships.delete_by_pk({"team": "x", "member": "b"}) == 1
        assert [m["role"] for m in memberships.find_all()] == ["lead"]

    def test_wrong_arity(self, memberships):
        with pytest.raises(ModelError):
            memberships.find_by_pk("x")

    def test_missing_column(self, memberships):
        with pytest.raises(ModelError):
            memberships.find_by_pk({"team": "x"})


class TestDynamicHelpers:
    def test_camel_case_find(self, contacts):
        assert contacts.findOneByName("bob")["id"] == contacts.find_one_by("name", "bob")["id"]
        assert len(contacts.findManyByEmail("shared@test.com")) == 2

    def test_snake_case_find(self, contacts):
        assert contacts.find_one_by_name("bob")["id"] == 2
        assert len(contacts.find_many_by_email("shared@test.com", order_by="name")) == 2

    def test_count_update_delete(self, contacts):
        assert contacts.countByEmail("shared@test.com") == 2
        assert contacts.update_by_name("ann", {"email": "x"}) == 1
        assert contacts.deleteByEmail("x") == 1
        assert contacts.count() == 3

    def test_camel_field_becomes_snake_column(self, db):
        db.exec("CREATE TABLE account (id INTEGER PRIMARY KEY, email_address TEXT)")
        accounts = db.factory("@account")
        accounts.insert({"email_address": "a@test.com"})
        assert accounts.findOneByEmailAddress("a@test.com")["id"] == 1

    def test_call(self, contacts):
        assert contacts.call("findOneByName", "ann")["id"] == 1
        assert contacts.call("count") == 4
        assert contacts.call("update_by_pk", 1, {"name": "anne"}) == 1

    def test_unknown_method(self, contacts):
        with pytest.raises(UnknownMethodError) as exc_info:
            contacts.frobnicate()
        assert exc_info.value.name == "frobnicate"

    def test_unknown_method_is_attribute_error(self, contacts):
        assert not hasattr(contacts, "frobnicate")
        assert getattr(contacts, "_private", None) is None
