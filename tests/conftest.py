"""
Shared fixtures

FakeDatabase mimics the parts of `databases.Database` the membership and
scanner services use: the statements they issue, conflict handling on the
membership key, the member_count trigger and transaction rollback.
Statements are matched by SQL text and run one at a time, so ON CONFLICT,
set_config and ANY(:names) binding are only exercised for real by
test_postgres_integration.py.
"""

import copy
from datetime import datetime, timedelta, timezone

import pytest

import cats_admin.database
from cats_admin.services import invalid_name_scanner, membership_service

ADMIN = "0xadmin000000000000000000000000000000000001"


class _FakeTransaction:
    def __init__(self, db):
        self.db = db

    async def __aenter__(self):
        self._snapshot = (copy.deepcopy(self.db.categories), copy.deepcopy(self.db.memberships))
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.db.categories, self.db.memberships = self._snapshot
            self.db.actor = None
            self.db.rollbacks += 1
        else:
            if self.db.actor is not None:
                self.db.committed_actors.append(self.db.actor)
            self.db.actor = None
        return False


class FakeDatabase:
    def __init__(self):
        self.categories = {}
        self.memberships = {}
        self.known_names = set()
        self.queries = []
        self.actor = None
        self.committed_actors = []
        self.rollbacks = 0
        self.fail_on_insert = None
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    # Test helpers

    def add_category(self, name):
        self.categories[name] = {"name": name, "member_count": 0}

    def add_member(self, category, ens_name):
        """Insert directly, bypassing validation (e.g. a legacy invalid name)"""
        self._clock += timedelta(seconds=1)
        self.memberships[(category, ens_name)] = self._clock
        self._recount(category)

    def members(self, category):
        return sorted(name for club, name in self.memberships if club == category)

    def _recount(self, category):
        if category in self.categories:
            self.categories[category]["member_count"] = sum(
                1 for club, _ in self.memberships if club == category
            )

    # databases.Database API

    def transaction(self):
        return _FakeTransaction(self)

    async def execute(self, query, values=None):
        self.queries.append(query)
        if "set_config('app.actor_address'" in query:
            self.actor = values["actor"]
            return None
        raise AssertionError(f"Unexpected execute: {query}")

    async def fetch_one(self, query, values=None):
        self.queries.append(query)
        values = values or {}

        if "FROM clubs WHERE name = :name" in query:
            category = self.categories.get(values["name"])
            return {"name": category["name"]} if category else None

        if "INSERT INTO club_memberships" in query:
            key = (values["club_name"], values["ens_name"])
            if values["ens_name"] == self.fail_on_insert:
                raise RuntimeError("connection reset")
            if key in self.memberships:
                return None
            self._clock += timedelta(seconds=1)
            self.memberships[key] = self._clock
            self._recount(key[0])
            return {"ens_name": key[1]}

        if "SELECT ens_name FROM club_memberships WHERE LOWER(ens_name) = ANY(:names)" in query:
            for _, ens_name in sorted(self.memberships):
                if ens_name.lower() in values["names"]:
                    return {"ens_name": ens_name}
            return None

        raise AssertionError(f"Unexpected fetch_one: {query}")

    async def fetch_all(self, query, values=None):
        self.queries.append(query)
        values = values or {}

        if "FROM ens_names WHERE LOWER(name) = ANY(:names)" in query:
            return [{"name": n} for n in sorted(self.known_names) if n.lower() in values["names"]]

        if "DELETE FROM club_memberships" in query:
            doomed = [
                key for key in self.memberships
                if key[0] == values["club_name"] and key[1].lower() in values["names"]
            ]
            for key in doomed:
                del self.memberships[key]
            self._recount(values["club_name"])
            return [{"ens_name": key[1]} for key in doomed]

        if "SELECT ens_name, added_at" in query and "FROM club_memberships" in query:
            return [
                {"ens_name": name, "added_at": added_at}
                for (club, name), added_at in sorted(self.memberships.items())
                if club == values["name"]
            ]

        raise AssertionError(f"Unexpected fetch_all: {query}")


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()
    db.add_category("three_digits")
    db.known_names.update({"vitalik.eth", "nick.eth", "brantly.eth", "ab.eth"})

    monkeypatch.setattr(cats_admin.database, "database", db)
    monkeypatch.setattr(membership_service, "database", db)
    monkeypatch.setattr(invalid_name_scanner, "database", db)
    return db
