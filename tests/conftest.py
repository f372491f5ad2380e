# tests/conftest.py
import os, sys
# ajoute la racine du projet (dossier contenant "core") en tête de sys.path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from datetime import datetime, timedelta, timezone

import pytest

from core.services.customer_repository import CustomerRepository
from core.storage.json_store import JsonRecordStore
from core.storage.record_store import MemoryRecordStore


def valid_payload(**overrides):
    data = {
        "full_name": "Jo Bloggs",
        "email": "jo@acme.io",
        "phone": "",
        "billing_address": "12 Harbour Road, Leith",
        "shipping_same_as_billing": True,
        "shipping_address": "",
    }
    data.update(overrides)
    return data


class FrozenClock:
    """Horloge figée : tous les appels renvoient le même instant."""

    def __init__(self, at=None):
        self.at = at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.at

    def advance(self, **kw):
        self.at += timedelta(**kw)


@pytest.fixture
def memory_store():
    return MemoryRecordStore()


@pytest.fixture
def json_store(tmp_path):
    return JsonRecordStore(tmp_path / "customerDB" / "customers.json", backup_keep=2)


@pytest.fixture
def repository(memory_store):
    return CustomerRepository(memory_store)


@pytest.fixture
def frozen_clock():
    return FrozenClock()
