"""Tests for ``tinyrecord.model`` — the active-record Model."""

from __future__ import annotations

import pytest

from tinyrecord.conditions import And, Raw
from tinyrecord.errors import ReservedFieldError
from tinyrecord.model import Model, ModelState, build_pk_conditions, entity_name_to_db_name, pk_columns
from tinyrecord.relations import one_to_many


class Contact(Model):
    table = "contact"


class ContactWithNotes(Model):
    table = "contact"
    relations = {"notes": one_to_many("@note", target_key="contact_id")}


class GuardedContact(Model):
    table = "contact"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls: list[str] = []
        self.allow = True

    def before_save(self) -> bool:
        self.calls.append("before_save")
        return self.allow

    def after_save(self) -> bool:
        self.calls.append("after_save")
        return True

    def before_delete(self) -> bool:
        self.calls.append("before_delete")
        return self.allow

    def after_delete(self) -> bool:
        self.calls.append("after_delete")
        return True


class BlogPost(Model):
    pass


def _stored(db, record_id):
    return db.command().from_("contact").where("id = :id", {"id": record_id}).query_row()


class TestNaming:
    def test_entity_name_to_db_name(self):
        assert entity_name_to_db_name("Contact") == "contact"
        assert entity_name_to_db_name("BlogPost") == "blog_post"
        assert entity_name_to_db_name("app.models.PostTag") == "post_tag"

    def test_default_table(self, db):
        assert BlogPost(db).get_table() == "blog_post"
        assert Contact(db).get_table() == "contact"
        assert Model(db, table="anything").get_table() == "anything"

    def test_pk_columns(self):
        assert pk_columns("id") == ["id"]
        assert pk_columns(("a", "b")) == ["a", "b"]

    def test_build_pk_conditions(self, db):
        conditions, params = build_pk_conditions(db, ("a", "b"), {"a": 1, "b": 2})
        assert conditions == And((Raw("`a` = :pk0"), Raw("`b` = :pk1")))
        assert params == {"pk0": 1, "pk1": 2}


class TestFields:
    def test_new_record_data_is_dirty(self, db):
        contact = Contact(db, {"name": "a"})
        assert contact.is_new()
        assert contact.state is ModelState.NEW
        assert contact.is_dirty()
        assert contact.get("name") == "a"
        assert contact.get_raw("name") is None

    def test_persisted_record_data_is_clean(self, db):
        contact = Contact(db, {"id": 1, "name": "a"}, False)
        assert not contact.is_new()
        assert not contact.is_dirty()
        assert contact.get_raw() == {"id": 1, "name": "a"}

    def test_dirty_value_wins(self, db):
        contact = Contact(db, {"id": 1, "name": "a"}, False)
        contact.set("name", "b")
        assert contact.get("name") == "b"
        assert contact.get_raw("name") == "a"
        assert contact.get() == {"id": 1, "name": "b"}

    def test_set_mapping_merges(self, db):
        contact = Contact(db).set({"name": "a"}).set({"email": "a@test.com"})
        assert contact.to_dict() == {"name": "a", "email": "a@test.com"}

    def test_unset(self, db):
        contact = Contact(db, {"id": 1, "name": "a"}, False)
        contact.set("name", "b").unset("name")
        assert contact.get("name") == "a"
        assert not contact.is_dirty()

    def test_mapping_protocol(self, db):
        contact = Contact(db, {"id": 1, "name": "a"}, False)
        contact["email"] = "a@test.com"
        assert contact["email"] == "a@test.com"
        assert "email" in contact
        assert "missing" not in contact
        assert sorted(contact) == ["email", "id", "name"]
        assert len(contact) == 3
        del contact["email"]
        assert "email" not in contact

    def test_missing_item(self, db):
        with pytest.raises(KeyError):
            Contact(db)["name"]
        assert Contact(db).get("name") is None

    def test_relation_names_are_reserved(self, db):
        contact = ContactWithNotes(db)
        with pytest.raises(ReservedFieldError):
            contact.set("notes", [])
        with pytest.raises(ReservedFieldError):
            ContactWithNotes(db, {"name": "a", "notes": []})

    def test_repr(self, db):
        assert repr(Contact(db, {"name": "a"})) == "Contact(table='contact', state=new, data={'name': 'a'})"


class TestSave:
    def test_insert_assigns_id(self, db):
        contact = Contact(db, {"name": "a", "email": "a@test.com"})
        assert contact.save() == 1
        assert not contact.is_new()
        assert not contact.is_dirty()
        assert contact["id"] == 1
        assert _stored(db, 1) == {"id": 1, "name": "a", "email": "a@test.com"}

    def test_explicit_pk_is_kept(self, db):
        contact = Contact(db, {"id": 42, "name": "a"})
        assert contact.save() == 1
        assert contact["id"] == 42

    def test_insert_without_fields(self, db):
        contact = Contact(db)
        assert contact.save() == 1
        assert contact["id"] == 1
        assert _stored(db, 1) == {"id": 1, "name": None, "email": None}

    def test_clean_record_writes_nothing(self, db):
        contact = Contact(db, {"name": "a"})
        contact.save()
        assert contact.save() is None

    def test_update_writes_changes(self, db):
        contact = Contact(db, {"name": "a"})
        contact.save()
        contact["email"] = "new@test.com"
        assert contact.save() == 1
        assert contact.get_raw("email") == "new@test.com"
        assert _stored(db, 1)["email"] == "new@test.com"

    def test_update_only_touches_own_row(self, db):
        first = Contact(db, {"name": "a"})
        second = Contact(db, {"name": "b"})
        first.save()
        second.save()
        second["name"] = "c"
        second.save()
        assert _stored(db, 1)["name"] == "a"
        assert _stored(db, 2)["name"] == "c"

    def test_failed_insert_leaves_record_unchanged(self, db):
        record = Model(db, {"name": "a"}, table="missing")
        assert record.save() is None
        assert record.is_new()
        assert record.get("name") == "a"
        assert record.is_dirty()

    def test_failed_update_keeps_changes(self, db):
        record = Model(db, {"id": 1, "name": "a"}, False, table="missing")
        record["name"] = "b"
        assert record.save() is None
        assert record.is_dirty()
        assert record.get_raw("name") == "a"

    def test_composite_key_update(self, db):
        db.exec("CREATE TABLE membership (team TEXT, member TEXT, role TEXT, PRIMARY KEY (team, member))")
        db.command().insert("membership", {"team": "x", "member": "a", "role": "dev"})
        db.command().insert("membership", {"team": "x", "member": "b", "role": "dev"})

        record = Model(db, {"team": "x", "member": "b", "role": "dev"}, False, table="membership", pk=("team", "member"))
        record["role"] = "lead"
        assert record.save() == 1
        roles = db.command().select("member, role").from_("membership").order_by("member").query_all()
        assert roles == [{"member": "a", "role": "dev"}, {"member": "b", "role": "lead"}]


class TestDelete:
    def test_delete_persisted(self, db):
        contact = Contact(db, {"name": "a"})
        contact.save()
        assert contact.delete() == 1
        assert contact.is_deleted()
        assert contact.get() == {}
        assert db.factory("@contact").count() == 0

    def test_deleted_record_cannot_be_saved_or_deleted(self, db):
        contact = Contact(db, {"name": "a"})
        contact.save()
        contact.delete()
        contact["name"] = "b"
        assert contact.save() is None
        assert contact.delete() is None
        assert db.factory("@contact").count() == 0

    def test_delete_new_record(self, db):
        contact = Contact(db, {"name": "a"})
        assert contact.delete() == 0
        assert contact.is_new()
        assert contact.get() == {}

    def test_failed_delete_keeps_state(self, db):
        record = Model(db, {"id": 1}, False, table="missing")
        assert record.delete() is None
        assert record.state is ModelState.PERSISTED
        assert record.get("id") == 1


class TestHooks:
    def test_save_hooks(self, db):
        contact = GuardedContact(db, {"name": "a"})
        contact.save()
        assert contact.calls == ["before_save", "after_save"]

    def test_before_save_can_veto(self, db):
        contact = GuardedContact(db, {"name": "a"})
        contact.allow = False
        assert contact.save() is None
        assert contact.calls == ["before_save"]
        assert db.factory("@contact").count() == 0

    def test_before_delete_can_veto(self, db):
        contact = GuardedContact(db, {"name": "a"})
        contact.save()
        contact.allow = False
        assert contact.delete() is None
        assert not contact.is_deleted()
        assert db.factory("@contact").count() == 1

    def test_delete_hooks(self, db):
        contact = GuardedContact(db, {"name": "a"})
        contact.save()
        contact.calls.clear()
        contact.delete()
        assert contact.calls == ["before_delete", "after_delete"]

    def test_skipped_save_does_not_run_after_hook(self, db):
        contact = GuardedContact(db, {"name": "a"})
        contact.save()
        contact.calls.clear()
        assert contact.save() is None
        assert contact.calls == ["before_save"]
