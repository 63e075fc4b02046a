import copy
from contextlib import nullcontext
from unittest.mock import MagicMock, patch

import pytest

from coachbot.core import state_machine as sm
from coachbot.core.dispatcher import Dispatcher
from coachbot.messaging.client import TransportError
from coachbot.store.models import SubjectRecord
from coachbot.store.record_repo import StaleRecordError

NOW = 1_750_000_000_000  # fixed clock, epoch ms


class MemoryStore:
    """RecordStore stand-in: same method surface, same version check, plain dicts."""

    def __init__(self):
        self.records = {}
        self.latest = {}
        self.fail_save = None

    def load(self, flow, record_id):
        data = self.records.get((flow, record_id))
        return SubjectRecord(**copy.deepcopy(data)) if data else None

    def load_onboarding(self, address):
        return self.load(sm.ONBOARDING, address)

    def load_checkin(self, address, period):
        return self.load(sm.CHECKIN, f"{address}:{period}")

    def load_current_checkin(self, address):
        record_id = self.latest.get(address)
        return self.load(sm.CHECKIN, record_id) if record_id else None

    def ids_in_states(self, flow, states):
        states = set(states)
        return sorted(rid for (f, rid), d in self.records.items() if f == flow and d["state"] in states)

    def list_all(self, flow):
        return [self.load(f, rid) for (f, rid) in sorted(self.records) if f == flow]

    def save(self, record):
        if self.fail_save is not None:
            raise self.fail_save
        key = (record.flow, record.record_id)
        stored = self.records.get(key)
        stored_version = stored["version"] if stored else 0
        if stored_version != record.version:
            raise StaleRecordError(f"{key} at {stored_version}, expected {record.version}")
        record.version = stored_version + 1
        record.createdAt = record.createdAt or NOW
        record.updatedAt = NOW
        if record.flow == sm.CHECKIN and stored is None:
            self.latest[record.address] = record.record_id
        self.records[key] = record.to_dict()
        return record

    def put(self, **kwargs) -> SubjectRecord:
        """Seed a record directly (bypasses the dispatcher)."""
        kwargs.setdefault("lastMessageAt", NOW)
        return self.save(SubjectRecord(**kwargs))


class Outbox:
    """Records every outbound message; addresses in `fail_for` raise TransportError."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def __call__(self, address, text):
        if address in self.fail_for:
            raise TransportError(address, "simulated outage")
        self.sent.append((address, text))
        return f"SM{len(self.sent)}"

    def texts(self, address=None):
        return [t for a, t in self.sent if address is None or a == address]


@pytest.fixture(autouse=True)
def quiet_metrics():
    # Counters go to a mock Redis so tests never need a server
    with patch("coachbot.observability.metrics.get_redis") as mock_get_redis:
        mock_get_redis.return_value = MagicMock()
        yield mock_get_redis


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def dispatcher(store, outbox):
    return Dispatcher(
        store=store,
        send=outbox,
        lock=lambda address: nullcontext(),
        clock=lambda: NOW,
        schedule_kickoff=MagicMock(),
    )
