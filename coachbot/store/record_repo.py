import json
import inspect
from typing import Iterable, List, Optional

from redis import Redis
from redis.exceptions import RedisError, WatchError

from coachbot.core import state_machine as sm
from coachbot.observability.logging import log
from coachbot.store.models import SubjectRecord
from coachbot.store.redis_conn import get_redis
from coachbot.utils.time import now_ms

PREFIX = "record:"


class StoreError(RuntimeError):
    """Persistence failure; carries enough context to replay the transition by hand."""


class StaleRecordError(StoreError):
    """The stored record changed since it was loaded (version mismatch)."""


def _key(flow: str, record_id: str) -> str:
    return f"{PREFIX}{flow}:{record_id}"


def _all_key(flow: str) -> str:
    return f"index:{flow}:all"


def _state_key(flow: str, state: str) -> str:
    return f"index:{flow}:state:{state}"


def _latest_checkin_key(address: str) -> str:
    return f"index:{sm.CHECKIN}:latest:{address}"


def _filter_record_kwargs(data: dict) -> dict:
    """
    Drop unknown fields so SubjectRecord(**kwargs) never explodes
    """
    sig = inspect.signature(SubjectRecord)
    allowed = set(sig.parameters.keys())
    return {k: v for k, v in data.items() if k in allowed}


def _decode(raw: str) -> SubjectRecord:
    data = json.loads(raw)
    data["answers"] = data.get("answers") or {}
    return SubjectRecord(**_filter_record_kwargs(data))


class RecordStore:
    """
    Redis-backed subject records.

    Layout:
      record:<flow>:<id>               JSON record (id = address, or address:periodStart for check-ins)
      index:<flow>:all                 set of ids
      index:<flow>:state:<STATE>       set of ids currently in STATE
      index:checkin:latest:<address>   id of the newest check-in record for an address
    """

    def __init__(self, redis: Optional[Redis] = None):
        self._redis = redis

    @property
    def r(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def load(self, flow: str, record_id: str) -> Optional[SubjectRecord]:
        try:
            raw = self.r.get(_key(flow, record_id))
        except RedisError as e:
            log(event="record_load_failed", flow=flow, recordId=record_id, error=str(e)[:300])
            raise StoreError(f"Could not load {flow} record {record_id}") from e
        if not raw:
            return None
        return _decode(raw)

    def load_onboarding(self, address: str) -> Optional[SubjectRecord]:
        return self.load(sm.ONBOARDING, address)

    def load_checkin(self, address: str, period: str) -> Optional[SubjectRecord]:
        return self.load(sm.CHECKIN, f"{address}:{period}")

    def load_current_checkin(self, address: str) -> Optional[SubjectRecord]:
        try:
            record_id = self.r.get(_latest_checkin_key(address))
        except RedisError as e:
            raise StoreError(f"Could not resolve latest check-in for {address}") from e
        if not record_id:
            return None
        return self.load(sm.CHECKIN, record_id)

    def ids_in_states(self, flow: str, states: Iterable[str]) -> List[str]:
        try:
            ids = set()
            for state in states:
                ids.update(self.r.smembers(_state_key(flow, state)) or [])
        except RedisError as e:
            raise StoreError(f"Could not query {flow} records by state") from e
        return sorted(ids)

    def list_all(self, flow: str) -> List[SubjectRecord]:
        try:
            ids = sorted(self.r.smembers(_all_key(flow)) or [])
        except RedisError as e:
            raise StoreError(f"Could not list {flow} records") from e
        records = [r for r in (self.load(flow, i) for i in ids) if r is not None]
        records.sort(key=lambda rec: rec.createdAt, reverse=True)
        return records

    def save(self, record: SubjectRecord) -> SubjectRecord:
        """
        Persist `record` if the stored copy still has the version it was loaded with.
        New records (version 0) are only written when nothing is stored under the key.
        Raises StaleRecordError on a version mismatch, StoreError on Redis failure.
        """
        flow = record.flow
        record_id = record.record_id
        key = _key(flow, record_id)
        now = now_ms()

        try:
            with self.r.pipeline() as pipe:
                pipe.watch(key)
                raw = pipe.get(key)
                stored = json.loads(raw) if raw else None
                stored_version = int((stored or {}).get("version") or 0)
                if stored_version != int(record.version or 0):
                    raise StaleRecordError(
                        f"{flow} record {record_id} is at version {stored_version}, "
                        f"expected {record.version}"
                    )
                old_state = (stored or {}).get("state")

                data = record.to_dict()
                data["version"] = stored_version + 1
                data["createdAt"] = int(record.createdAt or now)
                data["updatedAt"] = now

                pipe.multi()
                pipe.set(key, json.dumps(data))
                pipe.sadd(_all_key(flow), record_id)
                if old_state and old_state != record.state:
                    pipe.srem(_state_key(flow, old_state), record_id)
                pipe.sadd(_state_key(flow, record.state), record_id)
                if flow == sm.CHECKIN and stored is None:
                    pipe.set(_latest_checkin_key(record.address), record_id)
                pipe.execute()
        except WatchError as e:
            raise StaleRecordError(f"{flow} record {record_id} changed during save") from e
        except RedisError as e:
            raise StoreError(f"Could not save {flow} record {record_id}") from e

        record.version = data["version"]
        record.createdAt = data["createdAt"]
        record.updatedAt = now
        return record


_default_store: Optional[RecordStore] = None


def get_store() -> RecordStore:
    global _default_store
    if _default_store is None:
        _default_store = RecordStore()
    return _default_store
