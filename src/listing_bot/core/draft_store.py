"""
Saved drafts for new listings.

A draft is the in-progress FormState plus the current wizard step, kept
under two keys in a key-value storage:

    {prefix}:{scope}:data   — form fields as a JSON object
    {prefix}:{scope}:step   — current step number

`scope` identifies the user session (e.g. "telegram:610379797"), so two
users never share or overwrite each other's draft.

Storage backends:
  MemoryStorage — process-local dict, lost on restart
  SqlStorage    — rows in the draft_entries table
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from listing_bot.core.errors import UnknownFieldError
from listing_bot.core.form_state import FIRST_STEP, FormState, WizardStep
from listing_bot.db.repositories import delete_draft_value, get_draft_value, set_draft_value

logger = logging.getLogger(__name__)


# ── Storage backends ─────────────────────────────────────────


class KeyValueStorage(ABC):
    """Minimal string key-value storage used by DraftStore."""

    @abstractmethod
    async def get_item(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        ...


class MemoryStorage(KeyValueStorage):
    def __init__(self) -> None:
        self.items: dict[str, str] = {}

    async def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    async def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class SqlStorage(KeyValueStorage):
    """Draft storage in the draft_entries table. Each call commits on its own."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_item(self, key: str) -> str | None:
        async with self._session_factory() as session:
            return await get_draft_value(session, key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            await set_draft_value(session, key, value)
            await session.commit()

    async def remove_item(self, key: str) -> None:
        async with self._session_factory() as session:
            await delete_draft_value(session, key)
            await session.commit()


# ── Draft store ──────────────────────────────────────────────


@dataclass
class PersistedDraft:
    form: FormState
    step: WizardStep


class DraftStore:
    """Save, load and clear the new-listing draft of one user session."""

    def __init__(
        self,
        storage: KeyValueStorage,
        scope: str,
        *,
        prefix: str = "listing_form",
    ) -> None:
        self.storage = storage
        self.scope = scope
        self.form_key = f"{prefix}:{scope}:data"
        self.step_key = f"{prefix}:{scope}:step"

    async def save(self, form: FormState, step: WizardStep) -> None:
        await self.storage.set_item(self.form_key, json.dumps(form.to_dict(), ensure_ascii=False))
        await self.storage.set_item(self.step_key, str(int(step)))

    async def load(self) -> PersistedDraft | None:
        """
        Load the saved draft, or None if there is none.

        A draft that cannot be parsed is discarded (both keys removed)
        and treated as absent.
        """
        raw_form = await self.storage.get_item(self.form_key)
        raw_step = await self.storage.get_item(self.step_key)
        if raw_form is None and raw_step is None:
            return None

        try:
            form = FormState()
            if raw_form:
                restore_fields(form, _parse_object(raw_form))
            step = _parse_step(raw_step)
        except (ValueError, TypeError) as e:
            logger.warning("Discarding corrupted listing draft for %s: %s", self.scope, e)
            await self.clear()
            return None

        logger.debug("Loaded listing draft for %s at step %d", self.scope, step)
        return PersistedDraft(form=form, step=step)

    async def clear(self) -> None:
        await self.storage.remove_item(self.form_key)
        await self.storage.remove_item(self.step_key)


def restore_fields(form: FormState, data: dict[str, Any]) -> None:
    """
    Replay saved fields one by one through FormState.set_field.

    Keys missing from `data` keep their defaults; null values and keys
    that are no longer form fields are skipped.
    """
    for name, value in data.items():
        if value is None:
            continue
        try:
            form.set_field(name, value)
        except UnknownFieldError:
            logger.debug("Skipping unknown draft field %r", name)


def _parse_object(raw: str) -> dict[str, Any]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _parse_step(raw: str | None) -> WizardStep:
    if not raw:
        return FIRST_STEP
    try:
        return WizardStep(int(raw))
    except ValueError:
        # Out-of-range step: keep the form, restart at the first step
        return FIRST_STEP
