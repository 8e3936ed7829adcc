"""
Tacna Transit Navigator — RouteStore
======================================
Single source of truth for the admin route collection.

Persistence is injected (see storage.py). Loading is read-validate-repair:
anything missing, corrupt or schema-invalid is replaced by the default
dataset, which is written back immediately. Saving is last-writer-wins.
Changes written by another session arrive through the storage port and
are re-validated with the same parser as a direct load.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Callable, Iterable, List, Optional, Tuple

from pydantic import AfterValidator, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors    import DuplicateIdError, StorageError, ValidationError
from .models    import BlockedRouteInfo, RouteRecord, blocked_route_info
from .seed_data import DEFAULT_ROUTES, ROUTES_STORAGE_KEY
from .storage   import KeyValueStorage

log = logging.getLogger("navigator.store")


def _unique_ids(records: List[RouteRecord]) -> List[RouteRecord]:
    seen = set()
    for record in records:
        if record.id in seen:
            raise ValueError(f"duplicate route id '{record.id}'")
        seen.add(record.id)
    return records


_records_adapter = TypeAdapter(Annotated[List[RouteRecord], AfterValidator(_unique_ids)])


def parse_route_payload(raw: Optional[str]) -> List[RouteRecord]:
    """
    Decode a stored payload into route records.

    Validation is strict: numbers must be JSON numbers, status must be one of
    the RouteStatus values, every record must satisfy the RouteRecord
    invariants and ids must be unique. Raises ValidationError otherwise.
    """
    if raw is None:
        raise ValidationError("No stored route data")
    try:
        return _records_adapter.validate_json(raw, strict=True)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Stored route data is invalid ({exc.error_count()} error(s))"
        ) from exc


def serialize_routes(records: Iterable[RouteRecord]) -> str:
    return _records_adapter.dump_json(list(records), by_alias=True).decode("utf-8")


@dataclass(frozen=True)
class DataReset:
    """Recoverable condition: stored routes were replaced by the defaults."""

    reason:    str
    first_run: bool = False


@dataclass(frozen=True)
class StoreChange:
    kind:    str                      # load / load-reset / toggle / add / remove / reset / external
    records: Tuple[RouteRecord, ...]


StoreListener = Callable[[StoreChange], None]


class RouteStore:

    def __init__(
        self,
        storage:  KeyValueStorage,
        key:      str = ROUTES_STORAGE_KEY,
        defaults: Iterable[RouteRecord] = DEFAULT_ROUTES,
    ):
        self._storage   = storage
        self._key       = key
        self._defaults  = tuple(defaults)
        self._records: Tuple[RouteRecord, ...] = ()
        self._listeners: List[StoreListener] = []
        self.last_reset: Optional[DataReset] = None
        self._unsubscribe_storage = storage.subscribe(self._on_storage_change)

    # ── Read access ───────────────────────────────────────────────────────────

    @property
    def records(self) -> Tuple[RouteRecord, ...]:
        return self._records

    def get(self, route_id: str) -> Optional[RouteRecord]:
        return next((r for r in self._records if r.id == route_id), None)

    def blocked_route_info(self) -> List[BlockedRouteInfo]:
        return blocked_route_info(self._records)

    # ── Persistence checkpoints ───────────────────────────────────────────────

    def load(self) -> Tuple[RouteRecord, ...]:
        """Load routes from storage, self-healing to the defaults when needed."""
        try:
            raw = self._storage.get(self._key)
        except StorageError as exc:
            return self._restore_defaults(DataReset(reason=f"Stored route data is unreadable: {exc}"))

        try:
            records = parse_route_payload(raw)
        except ValidationError as exc:
            return self._restore_defaults(DataReset(reason=str(exc), first_run=raw is None))

        self._records   = tuple(records)
        self.last_reset = None
        log.info(f"Loaded {len(self._records)} routes from '{self._key}'")
        self._notify("load")
        return self._records

    def save(self, records: Optional[Iterable[RouteRecord]] = None) -> None:
        """Persist records verbatim (default: the in-memory collection)."""
        to_save = self._records if records is None else tuple(records)
        payload = serialize_routes(to_save)
        try:
            self._storage.set(self._key, payload)
        except Exception as exc:
            log.error(f"Failed to persist routes to '{self._key}': {exc}")
            raise StorageError(f"Could not persist routes: {exc}") from exc
        log.info(f"Saved {len(to_save)} routes to '{self._key}'")

    def _restore_defaults(self, reset: DataReset) -> Tuple[RouteRecord, ...]:
        if reset.first_run:
            log.info("No stored routes — initialising with defaults.")
        else:
            log.warning(f"{reset.reason} — restoring default routes.")
        self._records   = self._defaults
        self.last_reset = reset
        try:
            self.save()
        except StorageError as exc:
            # In-memory defaults stay authoritative; the next save retries.
            log.warning(f"Default routes kept in memory only: {exc}")
        self._notify("load-reset")
        return self._records

    # ── Admin mutations (in memory until save) ────────────────────────────────

    def toggle_status(self, route_id: str) -> None:
        record = self.get(route_id)
        if record is None:
            log.debug(f"toggle_status: unknown route id '{route_id}'")
            return
        updated = record.with_status(record.status.toggled())
        self._records = tuple(updated if r.id == route_id else r for r in self._records)
        log.info(f"Route '{route_id}' is now {updated.status.value}")
        self._notify("toggle")

    def add(self, record: RouteRecord) -> None:
        if self.get(record.id) is not None:
            raise DuplicateIdError(record.id)
        self._records = self._records + (record,)
        log.info(f"Route '{record.id}' added")
        self._notify("add")

    def remove(self, route_id: str) -> None:
        if self.get(route_id) is None:
            return
        self._records = tuple(r for r in self._records if r.id != route_id)
        log.info(f"Route '{route_id}' removed")
        self._notify("remove")

    def reset_to_defaults(self) -> None:
        """Restore the default routes and persist them. Raises StorageError."""
        self._records = self._defaults
        self._notify("reset")
        self.save()

    # ── Change propagation ────────────────────────────────────────────────────

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self._unsubscribe_storage()
        self._listeners.clear()

    def _notify(self, kind: str) -> None:
        change = StoreChange(kind=kind, records=self._records)
        for listener in list(self._listeners):
            listener(change)

    def _on_storage_change(self, key: str, raw: Optional[str]) -> None:
        if key != self._key:
            return
        if raw is None:
            log.warning(f"Storage key '{key}' was cleared by another session — ignoring.")
            return
        try:
            records = parse_route_payload(raw)
        except ValidationError as exc:
            log.warning(f"Ignoring external route update: {exc}")
            return
        self._records = tuple(records)
        log.info(f"Routes replaced by external update ({len(self._records)} routes)")
        self._notify("external")
