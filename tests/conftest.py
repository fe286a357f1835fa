"""
Shared fixtures for the committee dues test suite.

Provides an in-memory stand-in for the Beanie document classes and a fake
transaction so services and routes run WITHOUT MongoDB.
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime
from types import SimpleNamespace
from typing import Any

# Settings are read at import time: relax the production-secret check and set
# a webhook secret before anything imports app.config.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")

import pytest
from beanie import PydanticObjectId
from pymongo.errors import DuplicateKeyError

from app.models.dues import DuesRecord, DuesStatus
from app.models.expenditure import Expenditure
from app.models.member import Member, MemberRole


# ---------------------------------------------------------------------------
# In-memory documents
# ---------------------------------------------------------------------------

def _matches(doc: Any, query: dict) -> bool:
    for key, cond in query.items():
        value = getattr(doc, "id" if key == "_id" else key, None)
        if isinstance(cond, dict):
            if "$in" in cond and value not in cond["$in"]:
                return False
            if "$ne" in cond and value == cond["$ne"]:
                return False
        elif value != cond:
            return False
    return True


class FakeDoc(SimpleNamespace):
    """Attribute bag with the async Document methods services call."""

    async def insert(self):
        self._collection._insert(self)
        return self

    async def save(self, **kwargs):
        self._collection._check_unique(self)
        return self

    async def delete(self):
        self._collection.docs.remove(self)


class FakeQuery:
    def __init__(self, collection: "FakeCollection", query: dict):
        self.collection = collection
        self.query = query or {}

    def _items(self):
        return [d for d in self.collection.docs if _matches(d, self.query)]

    def sort(self, *keys):
        return self

    async def to_list(self):
        return list(self._items())

    async def count(self):
        return len(self._items())

    async def update(self, update: dict, session=None):
        items = self._items()
        for doc in items:
            if self.collection.fail_update_for and doc.id in self.collection.fail_update_for:
                raise RuntimeError(f"write failed for {doc.id}")
            for k, v in update.get("$set", {}).items():
                setattr(doc, k, v)
        return SimpleNamespace(modified_count=len(items))

    async def delete(self):
        items = self._items()
        for doc in items:
            self.collection.docs.remove(doc)
        return SimpleNamespace(deleted_count=len(items))


class FakeCollection:
    """Callable stand-in for a Beanie Document class."""

    def __init__(self, model, unique: tuple[str, ...] = ()):
        self.model = model
        self.unique = unique
        self.docs: list[FakeDoc] = []
        self.fail_update_for: set = set()

    def __call__(self, **kwargs) -> FakeDoc:
        values = {}
        for name, field in self.model.model_fields.items():
            if name in ("id", "revision_id"):
                continue
            if not field.is_required():
                values[name] = field.get_default(call_default_factory=True)
        values.update(kwargs)
        values.setdefault("id", None)
        return FakeDoc(_collection=self, **values)

    def add(self, **kwargs) -> FakeDoc:
        doc = self(**kwargs)
        self._insert(doc)
        return doc

    def _check_unique(self, doc):
        if not self.unique:
            return
        key = tuple(getattr(doc, k) for k in self.unique)
        for other in self.docs:
            if other is not doc and tuple(getattr(other, k) for k in self.unique) == key:
                raise DuplicateKeyError(f"duplicate key {key}")

    def _insert(self, doc):
        self._check_unique(doc)
        if doc.id is None:
            doc.id = PydanticObjectId()
        self.docs.append(doc)

    def find(self, query: dict | None = None, session=None, **kwargs) -> FakeQuery:
        return FakeQuery(self, query or {})

    async def find_one(self, query: dict | None = None, **kwargs):
        items = FakeQuery(self, query or {})._items()
        return items[0] if items else None

    async def find_all(self):
        return list(self.docs)

    async def get(self, doc_id):
        for d in self.docs:
            if d.id == doc_id:
                return d
        return None


@pytest.fixture
def members_store():
    return FakeCollection(Member)


@pytest.fixture
def dues_store():
    return FakeCollection(DuesRecord, unique=("member_id", "month", "year"))


@pytest.fixture
def expenditures_store():
    return FakeCollection(Expenditure)


@pytest.fixture
def fake_transaction(dues_store):
    """Snapshot the dues store and roll it back if the block raises."""

    @asynccontextmanager
    async def _transaction():
        snapshot = [(doc, dict(vars(doc))) for doc in dues_store.docs]
        try:
            yield object()
        except Exception:
            for doc, state in snapshot:
                doc.__dict__.clear()
                doc.__dict__.update(state)
            raise

    return _transaction


# ---------------------------------------------------------------------------
# Sample data helpers
# ---------------------------------------------------------------------------

def add_member(store: FakeCollection, name: str = "Asha Rao", email: str | None = None,
               role: MemberRole = MemberRole.MEMBER, enrolled_at: datetime | None = datetime(2024, 3, 5)):
    return store.add(
        email=email or f"{name.split()[0].lower()}@example.com",
        hashed_password="x",
        full_name=name,
        role=role,
        enrolled_at=enrolled_at,
    )


def add_dues(store: FakeCollection, member, month: str, year: int, amount: float = 500.0,
             status: DuesStatus = DuesStatus.PENDING, **extra):
    return store.add(
        member_id=str(member.id),
        member_name=member.full_name,
        month=month,
        year=year,
        amount=amount,
        status=status,
        **extra,
    )


_MODULES_BY_NAME = {
    "Member": [
        "app.services.billing",
        "app.services.payments",
        "app.services.members",
        "app.api.auth",
        "app.api.deps",
        "app.api.dues",
        "app.api.members",
        "app.api.orders",
        "app.api.reports",
    ],
    "DuesRecord": [
        "app.services.billing",
        "app.services.payments",
        "app.services.members",
        "app.api.dues",
        "app.api.members",
        "app.api.orders",
        "app.api.reports",
    ],
    "Expenditure": [
        "app.api.expenditures",
        "app.api.reports",
    ],
}


@pytest.fixture
def ledger(monkeypatch, members_store, dues_store, expenditures_store, fake_transaction):
    """Point every module at the in-memory stores and fake transaction."""
    import importlib

    stores = {"Member": members_store, "DuesRecord": dues_store, "Expenditure": expenditures_store}
    for name, modules in _MODULES_BY_NAME.items():
        for module_name in modules:
            monkeypatch.setattr(importlib.import_module(module_name), name, stores[name])
    monkeypatch.setattr("app.services.payments.transaction", fake_transaction)
    return SimpleNamespace(members=members_store, dues=dues_store, expenditures=expenditures_store)
