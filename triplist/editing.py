# triplist/editing.py
"""Inline editing helpers.

``EditableField`` is the optimistic "show the new value, commit it, roll back
if the commit fails" cycle used by every inline-editable trip field.
``InlineEditor`` groups the fields of one record behind
``attempt_edit(field_id, value)``. ``EditModeState`` tracks the screen-wide
edit-mode flags and persists them through an injected load/save pair.
"""
from __future__ import annotations

import inspect
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_LIST_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

SaveFn = Callable[[str, Any], Union[Any, Awaitable[Any]]]
Validator = Callable[[Any], Optional[str]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(frozen=True)
class Committed:
    field_id: str
    value: Any


@dataclass(frozen=True)
class Rejected:
    field_id: str
    reason: str
    value: Any  # the value restored after the rollback


EditResult = Union[Committed, Rejected]


class EditableField:
    """A single field that toggles between display and edit representations."""

    def __init__(
        self,
        field_id: str,
        value: Any,
        save: SaveFn,
        *,
        validator: Optional[Validator] = None,
    ):
        self.field_id = field_id
        self.value = value
        self.draft = value
        self.is_editing = False
        self.saving = False
        self.error: Optional[str] = None
        self._save = save
        self._validator = validator

    def begin_edit(self) -> None:
        self.is_editing = True
        self.draft = self.value
        self.error = None

    def cancel(self) -> None:
        self.is_editing = False
        self.draft = self.value
        self.error = None

    async def commit(self) -> EditResult:
        """Commit the current draft."""
        return await self.attempt_edit(self.draft)

    async def attempt_edit(self, new_value: Any) -> EditResult:
        previous = self.value
        if new_value == previous:
            self.is_editing = False
            self.error = None
            return Committed(self.field_id, previous)

        if self._validator is not None:
            problem = self._validator(new_value)
            if problem:
                self.error = problem
                return Rejected(self.field_id, problem, previous)

        # optimistic: show the new value while the save is in flight
        self.value = new_value
        self.saving = True
        self.error = None
        try:
            await _maybe_await(self._save(self.field_id, new_value))
        except Exception as exc:
            reason = str(exc) or "Failed to save changes"
            # a later edit owns the field now; leave its value in place
            if self.value is new_value:
                logger.warning("Saving field %s failed; rolling back", self.field_id, exc_info=True)
                self.value = previous
                self.draft = new_value
                self.error = reason
            else:
                logger.warning("Saving field %s failed after a newer edit", self.field_id, exc_info=True)
            return Rejected(self.field_id, reason, self.value)
        finally:
            self.saving = False

        self.is_editing = False
        self.draft = new_value
        return Committed(self.field_id, new_value)


class InlineEditor:
    """Inline-editable fields of one record sharing a save function."""

    def __init__(
        self,
        values: Mapping[str, Any],
        save: SaveFn,
        *,
        validators: Optional[Mapping[str, Validator]] = None,
    ):
        validators = validators or {}
        self.fields: Dict[str, EditableField] = {
            name: EditableField(name, value, save, validator=validators.get(name))
            for name, value in values.items()
        }

    @property
    def values(self) -> Dict[str, Any]:
        return {name: f.value for name, f in self.fields.items()}

    def field(self, field_id: str) -> EditableField:
        try:
            return self.fields[field_id]
        except KeyError:
            raise KeyError(f"Unknown editable field: {field_id}") from None

    async def attempt_edit(self, field_id: str, new_value: Any) -> EditResult:
        return await self.field(field_id).attempt_edit(new_value)


# ---------- screen-wide edit mode ----------
LoadFn = Callable[[], Union[Optional[Mapping[str, Any]], Awaitable[Optional[Mapping[str, Any]]]]]
StoreFn = Callable[[Optional[Mapping[str, Any]]], Union[None, Awaitable[None]]]


class EditModeState:
    """Edit-mode flags persisted through ``load``/``save``.

    ``save(None)`` asks the store to forget the persisted state. Storage
    failures are logged and never interrupt the caller.
    """

    def __init__(self, load: LoadFn, save: StoreFn):
        self._load = load
        self._save = save
        self.is_edit_mode = False
        self.has_unsaved_changes = False
        self.is_saving = False
        self.save_error: Optional[str] = None
        self.is_initialized = False

    async def initialize(self) -> None:
        try:
            persisted = await _maybe_await(self._load())
            if persisted:
                self.is_edit_mode = bool(persisted.get("is_edit_mode", False))
                self.has_unsaved_changes = bool(persisted.get("has_unsaved_changes", False))
        except Exception:
            logger.warning("Failed to load persisted edit mode state", exc_info=True)
        finally:
            self.is_initialized = True

    async def _persist(self) -> None:
        snapshot = {
            "is_edit_mode": self.is_edit_mode,
            "has_unsaved_changes": self.has_unsaved_changes,
            "timestamp": time.time(),
        }
        try:
            await _maybe_await(self._save(snapshot))
        except Exception:
            logger.warning("Failed to persist edit mode state", exc_info=True)

    async def toggle(self) -> None:
        if self.is_edit_mode:
            # leaving edit mode drops pending changes
            self.has_unsaved_changes = False
            self.save_error = None
        self.is_edit_mode = not self.is_edit_mode
        await self._persist()

    async def enter(self) -> None:
        self.is_edit_mode = True
        self.has_unsaved_changes = False
        self.save_error = None
        await self._persist()

    async def exit(self) -> None:
        self.is_edit_mode = False
        self.has_unsaved_changes = False
        self.save_error = None
        await self._persist()

    async def mark_unsaved_changes(self) -> None:
        self.has_unsaved_changes = True
        await self._persist()

    async def clear_unsaved_changes(self) -> None:
        self.has_unsaved_changes = False
        await self._persist()

    def set_saving(self, saving: bool, error: Optional[str] = None) -> None:
        self.is_saving = saving
        self.save_error = error

    async def clear_persisted(self) -> None:
        try:
            await _maybe_await(self._save(None))
        except Exception:
            logger.warning("Failed to clear persisted edit mode state", exc_info=True)
            return
        self.is_edit_mode = False
        self.has_unsaved_changes = False
        self.save_error = None


class JsonFileEditModeStore:
    """File-backed load/save pair for ``EditModeState``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        return json.loads(self.path.read_text(encoding="utf-8"))

    def save(self, snapshot: Optional[Mapping[str, Any]]) -> None:
        if snapshot is None:
            self.path.unlink(missing_ok=True)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(dict(snapshot)), encoding="utf-8")
