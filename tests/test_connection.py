"""Tests for ``tinyrecord.connection`` — the connection registry."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from tinyrecord.adapters.registry import ClientRegistry
from tinyrecord.adapters.sqlite import SQLiteClient
from tinyrecord.command import Command
from tinyrecord.connection import Database
from tinyrecord.errors import ConfigError, QueryError, TransactionError, UnknownConnectionError
from tinyrecord.factory import Factory
from tinyrecord.settings import TinyRecordSettings


class TestRegistration:
    def test_empty_registry(self):
        db = Database()
        assert db.current == "default"
        assert db.list_connections() == []
        with pytest.raises(UnknownConnectionError):
            db.get_client()

    def test_first_connection_is_default(self):
        db = Database("sqlite::memory:")
        assert db.list_connections() == ["default"]
        assert db.get_config().dsn == "sqlite::memory:"

    def test_named_first_connection(self):
        db = Database("sqlite::memory:", name="main")
        assert db.current == "main"
        assert db.get_config("main").name == "main"

    def test_credentials_are_kept(self):
        db = Database("mysql:host=db;dbname=app", "root", "secret")
        config = db.get_config()
        assert config.username == "root"
        assert config.password == "secret"

    def test_invalid_dsn_rejected_at_registration(self):
        with pytest.raises(ConfigError):
            Database("mysql:host")

    def test_unknown_config(self):
        with pytest.raises(UnknownConnectionError) as exc_info:
            Database().get_config("nope")
        assert "nope" in str(exc_info.value)

    def test_from_settings(self):
        settings = TinyRecordSettings(
            dsn="sqlite::memory:",
            connections={"reports": "sqlite::memory:"},
            raise_errors=True,
        )
        db = Database.from_settings(settings)
        assert db.list_connections() == ["default", "reports"]
        assert db.get_config("reports").options == {"raise_errors": True}


class TestSwitching:
    def test_switch(self):
        db = Database("sqlite::memory:")
        db.add_connection("other", "sqlite::memory:")
        assert db.switch_connection("other") is db
        assert db.current == "other"
        db.switch_connection()
        assert db.current == "default"

    def test_switch_to_unknown(self):
        db = Database("sqlite::memory:")
        with pytest.raises(UnknownConnectionError):
            db.switch_connection("missing")
        assert db.current == "default"

    def test_queries_follow_current_connection(self, contact_ddl):
        db = Database("sqlite::memory:")
        db.add_connection("other", "sqlite::memory:")
        db.exec(contact_ddl)
        db.command().insert("contact", {"name": "a"})

        db.switch_connection("other")
        with pytest.raises(QueryError):
            db.command().from_("contact").query_all()

        db.switch_connection("default")
        assert db.factory("@contact").count() == 1
        db.close()

    def test_dialect_follows_current_connection(self, fake_client):
        db = Database()
        db.attach("default", fake_client("sqlite"))
        db.attach("pg", fake_client("pgsql"))
        assert db.quote_column("a.b") == "`a`.`b`"
        db.switch_connection("pg")
        assert db.quote_column("a.b") == '"a"."b"'


class TestClients:
    def test_lazy_creation_and_caching(self, fake_client):
        registry = MagicMock(spec=ClientRegistry)
        client = fake_client("sqlite")
        registry.create.return_value = client

        db = Database("sqlite::memory:", registry=registry)
        registry.create.assert_not_called()

        assert db.get_client() is client
        assert db.get_client() is client
        registry.create.assert_called_once_with(db.get_config())

    def test_real_client(self, db):
        client = db.get_client()
        assert isinstance(client, SQLiteClient)
        assert client.is_connected

    def test_concurrent_first_use_creates_one_client(self, fake_client):
        registry = MagicMock(spec=ClientRegistry)
        registry.create.side_effect = lambda config: fake_client("sqlite")
        db = Database("sqlite::memory:", registry=registry)

        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(db.get_client())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert registry.create.call_count == 1
        assert all(result is results[0] for result in results)

    def test_replacing_connection_closes_old_client(self):
        db = Database("sqlite::memory:")
        old = db.get_client()
        db.add_connection("default", "sqlite::memory:")
        assert not old.is_connected
        assert db.get_client() is not old

    def test_attach(self, fake_client):
        client = fake_client("mysql")
        db = Database().attach("default", client)
        assert db.get_client() is client
        assert db.driver_name == "mysql"
        assert db.list_connections() == ["default"]

    def test_close_all(self, fake_client):
        first, second = fake_client("sqlite"), fake_client("sqlite")
        db = Database().attach("default", first).attach("other", second)
        db.close()
        first.close.assert_called_once()
        second.close.assert_called_once()

    def test_close_one(self, fake_client):
        first, second = fake_client("sqlite"), fake_client("sqlite")
        db = Database().attach("default", first).attach("other", second)
        db.close("other")
        first.close.assert_not_called()
        second.close.assert_called_once()

    def test_context_manager(self, fake_client):
        client = fake_client("sqlite")
        with Database().attach("default", client) as db:
            assert db.get_client() is client
        client.close.assert_called_once()


class TestHelpers:
    def test_entry_points(self, db):
        assert isinstance(db.command(), Command)
        factory = db.factory("@contact")
        assert isinstance(factory, Factory)
        assert factory.get_table() == "contact"

    def test_quoting(self, db):
        assert db.quote_table("contact") == "`contact`"
        assert db.quote_column("contact.name") == "`contact`.`name`"
        assert db.quote_identifier("c.*") == "`c`.*"
        assert db.quote("O'Brien") == "'O''Brien'"
        assert db.quote(None) == "NULL"

    def test_equals(self, db):
        assert db.equals("name") == "`name` = :name"
        assert db.equals("name", "key") == "`name` = :key"

    def test_build_limit_offset(self, db):
        assert db.build_limit_offset("SELECT 1", 5) == "SELECT 1\nLIMIT 5"
        assert db.build_limit_offset("SELECT 1", 5, 2) == "SELECT 1\nLIMIT 5 OFFSET 2"
        assert db.build_limit_offset("SELECT 1", None) == "SELECT 1"

    def test_exec_and_query(self, db):
        assert db.exec("INSERT INTO contact (name) VALUES (:name)", {"name": "a"}) == 1
        assert db.last_insert_id() == 1
        statement = db.query("SELECT name FROM contact WHERE id = :id", {":id": 1})
        assert statement.fetch_scalar() == "a"
        statement.close()

    def test_exec_failure_returns_none(self, db):
        assert db.exec("INSERT INTO missing (name) VALUES ('a')") is None

    def test_query_failure_raises(self, db):
        with pytest.raises(QueryError) as exc_info:
            db.query("SELECT * FROM missing")
        assert exc_info.value.context.connection == "default"


class TestTransactions:
    def test_commit(self, db):
        db.begin_transaction()
        assert db.in_transaction()
        db.command().insert("contact", {"name": "a"})
        db.commit()
        assert not db.in_transaction()
        assert db.factory("@contact").count() == 1

    def test_rollback(self, db):
        db.begin_transaction()
        db.command().insert("contact", {"name": "a"})
        db.rollback()
        assert db.factory("@contact").count() == 0

    def test_nested_begin_rejected(self, db):
        db.begin_transaction()
        with pytest.raises(TransactionError):
            db.begin_transaction()
        db.rollback()

    def test_commit_without_transaction(self, db):
        with pytest.raises(TransactionError):
            db.commit()

    def test_context_manager_commits(self, db):
        with db.transaction():
            db.command().insert("contact", {"name": "a"})
        assert db.factory("@contact").count() == 1

    def test_context_manager_rolls_back(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.command().insert("contact", {"name": "a"})
                raise RuntimeError("boom")
        assert db.factory("@contact").count() == 0
        assert not db.in_transaction()
