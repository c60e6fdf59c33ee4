"""Tests for DraftStore over memory and SQL storage."""

import json

from listing_bot.core.draft_store import DraftStore, MemoryStorage, SqlStorage
from listing_bot.core.form_state import FormState, WizardStep


def test_keys():
    store = DraftStore(MemoryStorage(), "telegram:1")
    assert store.form_key == "listing_form:telegram:1:data"
    assert store.step_key == "listing_form:telegram:1:step"


async def test_round_trip(complete_form):
    storage = MemoryStorage()
    store = DraftStore(storage, "telegram:1")

    await store.save(complete_form, WizardStep.CONTACT)
    assert storage.items[store.step_key] == "3"

    draft = await store.load()
    assert draft is not None
    assert draft.step == WizardStep.CONTACT
    assert draft.form.to_dict() == complete_form.to_dict()


async def test_load_without_draft():
    assert await DraftStore(MemoryStorage(), "telegram:1").load() is None


async def test_corrupted_json_is_discarded():
    storage = MemoryStorage()
    store = DraftStore(storage, "telegram:1")
    storage.items[store.form_key] = "{not json"
    storage.items[store.step_key] = "2"

    assert await store.load() is None
    assert storage.items == {}


async def test_non_object_json_is_discarded():
    storage = MemoryStorage()
    store = DraftStore(storage, "telegram:1")
    storage.items[store.form_key] = json.dumps(["title"])

    assert await store.load() is None
    assert storage.items == {}


async def test_wrong_field_type_is_discarded():
    storage = MemoryStorage()
    store = DraftStore(storage, "telegram:1")
    storage.items[store.form_key] = json.dumps({"amenities": "wifi"})

    assert await store.load() is None
    assert storage.items == {}


async def test_partial_draft_keeps_defaults():
    storage = MemoryStorage()
    store = DraftStore(storage, "telegram:1")
    storage.items[store.form_key] = json.dumps(
        {"title": "Cottage", "price": None, "legacy_field": 1}
    )

    draft = await store.load()
    assert draft is not None
    assert draft.form.title == "Cottage"
    assert draft.form.price == ""
    assert draft.form.images == []
    assert draft.step == WizardStep.BASIC_INFO


async def test_out_of_range_step_restarts_at_first_step():
    storage = MemoryStorage()
    store = DraftStore(storage, "telegram:1")
    await store.save(FormState(title="Cottage"), WizardStep.PHOTOS)
    storage.items[store.step_key] = "9"

    draft = await store.load()
    assert draft.step == WizardStep.BASIC_INFO
    assert draft.form.title == "Cottage"


async def test_non_numeric_step():
    storage = MemoryStorage()
    store = DraftStore(storage, "telegram:1")
    storage.items[store.step_key] = "photos"

    draft = await store.load()
    assert draft.step == WizardStep.BASIC_INFO


async def test_scopes_do_not_share_drafts():
    storage = MemoryStorage()
    first = DraftStore(storage, "telegram:1")
    second = DraftStore(storage, "telegram:2")

    await first.save(FormState(title="First"), WizardStep.DETAILS)
    assert await second.load() is None

    await second.clear()
    assert (await first.load()).form.title == "First"


async def test_clear():
    storage = MemoryStorage()
    store = DraftStore(storage, "telegram:1")
    await store.save(FormState(title="Cottage"), WizardStep.DETAILS)
    await store.clear()
    assert storage.items == {}
    assert await store.load() is None


async def test_sql_storage_round_trip(session_factory, complete_form):
    store = DraftStore(SqlStorage(session_factory), "telegram:7", prefix="drafts")

    await store.save(complete_form, WizardStep.DETAILS)
    complete_form.set_field("title", "Renamed")
    await store.save(complete_form, WizardStep.PHOTOS)

    draft = await store.load()
    assert draft.step == WizardStep.PHOTOS
    assert draft.form.title == "Renamed"
    assert draft.form.amenities == {"wifi", "water"}

    await store.clear()
    assert await store.load() is None
