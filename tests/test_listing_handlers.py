"""Tests for the Telegram listing wizard handlers."""

from types import SimpleNamespace

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage as FSMMemoryStorage

from listing_bot.adapters.telegram import listing_handlers
from listing_bot.adapters.telegram.fsm_states import ListingForm
from listing_bot.config import settings
from listing_bot.core.draft_store import DraftStore, SqlStorage
from listing_bot.core.form_state import FormState, WizardStep
from listing_bot.db.repositories import get_host_properties
from listing_bot.services.image_upload import ImageFile, ImageUploadError

USER_ID = 610379797


class FakeMessage:
    """Records what the handler sends or edits."""

    def __init__(self, text: str | None = None, user_id: int = USER_ID) -> None:
        self.text = text
        self.from_user = SimpleNamespace(id=user_id, full_name="Asha Mushi")
        self.answers: list[str] = []
        self.edits: list[str] = []

    async def answer(self, text: str, **kwargs) -> None:
        self.answers.append(text)

    async def edit_text(self, text: str, **kwargs) -> None:
        self.edits.append(text)

    async def edit_reply_markup(self, **kwargs) -> None:
        pass


class FakeCallback:
    def __init__(self, data: str, user_id: int = USER_ID) -> None:
        self.data = data
        self.from_user = SimpleNamespace(id=user_id, full_name="Asha Mushi")
        self.message = FakeMessage(user_id=user_id)
        self.alerts: list[str | None] = []

    async def answer(self, text: str | None = None, show_alert: bool = False) -> None:
        self.alerts.append(text)


class FakeUploader:
    def __init__(self, on_upload=None, error: Exception | None = None) -> None:
        self.on_upload = on_upload
        self.error = error
        self.uploaded: list[str] = []

    async def upload(self, file: ImageFile, owner_id: str) -> str:
        if self.on_upload is not None:
            await self.on_upload()
        if self.error is not None:
            raise self.error
        url = f"https://store.example/{owner_id}/{file.filename}"
        self.uploaded.append(url)
        return url


@pytest.fixture(autouse=True)
def handler_env(session_factory, monkeypatch):
    monkeypatch.setattr(listing_handlers, "async_session_factory", session_factory)
    monkeypatch.setattr(listing_handlers, "_wizards", {})


@pytest.fixture
def state() -> FSMContext:
    return FSMContext(
        storage=FSMMemoryStorage(),
        key=StorageKey(bot_id=1, chat_id=USER_ID, user_id=USER_ID),
    )


@pytest.fixture
def drafts(session_factory) -> DraftStore:
    return DraftStore(
        SqlStorage(session_factory), f"telegram:{USER_ID}", prefix=settings.draft_key_prefix
    )


def use_uploader(monkeypatch, uploader: FakeUploader) -> None:
    monkeypatch.setattr(listing_handlers, "get_uploader", lambda: uploader)


async def open_listing(state: FSMContext):
    await listing_handlers.cmd_newlisting(FakeMessage("/newlisting"), state)
    return listing_handlers._wizards[USER_ID]


def photo() -> ImageFile:
    return ImageFile(filename="bedroom.jpg", content=b"\xff\xd8" * 1024)


# ── Commands and field input ─────────────────────────────────


async def test_newlisting_shows_first_step(state, host):
    message = FakeMessage("/newlisting")
    await listing_handlers.cmd_newlisting(message, state)

    assert "Step 1/4" in message.answers[0]
    assert "restored" not in message.answers[0]
    assert await state.get_state() == ListingForm.browsing.state


async def test_newlisting_restores_draft(state, host, drafts):
    await drafts.save(FormState(title="Sea view flat"), WizardStep.DETAILS)

    message = FakeMessage("/newlisting")
    await listing_handlers.cmd_newlisting(message, state)

    assert "Your saved draft has been restored" in message.answers[0]
    assert "Step 2/4" in message.answers[0]
    assert listing_handlers._wizards[USER_ID].form.title == "Sea view flat"


async def test_field_value_updates_form_and_draft(state, host, drafts):
    wizard = await open_listing(state)

    callback = FakeCallback("lw:field:title")
    await listing_handlers.on_field(callback, state)
    assert await state.get_state() == ListingForm.entering_value.state

    await listing_handlers.on_field_value(FakeMessage("  Sea view flat "), state)
    assert wizard.form.title == "Sea view flat"
    assert (await drafts.load()).form.title == "Sea view flat"
    assert await state.get_state() == ListingForm.browsing.state


# ── Navigation ───────────────────────────────────────────────


async def test_next_blocked_on_incomplete_step(state, host):
    wizard = await open_listing(state)

    callback = FakeCallback("lw:next")
    await listing_handlers.on_next(callback)

    assert callback.alerts == ["Fill in the required fields on this step first."]
    assert callback.message.edits == []
    assert wizard.step == WizardStep.BASIC_INFO


async def test_goto_forward_blocked(state, host):
    wizard = await open_listing(state)

    callback = FakeCallback("lw:goto:3")
    await listing_handlers.on_goto(callback)

    assert callback.alerts == ["Complete the earlier steps first."]
    assert wizard.step == WizardStep.BASIC_INFO


async def test_callback_without_open_listing(state, host):
    callback = FakeCallback("lw:next")
    await listing_handlers.on_next(callback)
    assert callback.alerts == [listing_handlers.SESSION_ENDED]


# ── Submit / cancel ──────────────────────────────────────────


async def test_submit_saves_listing(state, host, drafts, session_factory, complete_form):
    wizard = await open_listing(state)
    for name, value in complete_form.to_dict().items():
        await wizard.update_field(name, value)
    await wizard.jump_to(WizardStep.PHOTOS)

    callback = FakeCallback("lw:submit")
    await listing_handlers.on_submit(callback, state)

    assert "Listing submitted for review" in callback.message.edits[0]
    assert complete_form.title in callback.message.edits[0]
    assert not wizard.is_open
    assert await state.get_state() is None
    assert await drafts.load() is None

    async with session_factory() as session:
        saved = await get_host_properties(session, host.id)
    assert [p.title for p in saved] == [complete_form.title]


async def test_submit_incomplete_lists_problems(state, host, session_factory, complete_form):
    wizard = await open_listing(state)
    for name, value in complete_form.to_dict().items():
        await wizard.update_field(name, value)
    await wizard.jump_to(WizardStep.PHOTOS)
    await wizard.remove_image(0)

    callback = FakeCallback("lw:submit")
    await listing_handlers.on_submit(callback, state)

    assert "Please complete the listing:" in callback.message.edits[0]
    assert wizard.is_open
    async with session_factory() as session:
        assert await get_host_properties(session, host.id) == []


async def test_cancel_clears_draft(state, host, drafts):
    wizard = await open_listing(state)
    await wizard.update_field("title", "Sea view flat")

    callback = FakeCallback("lw:cancel")
    await listing_handlers.on_cancel(callback, state)

    assert callback.message.edits == ["❌ Listing cancelled."]
    assert not wizard.is_open
    assert await drafts.load() is None


# ── Photos ───────────────────────────────────────────────────


async def test_photo_added(state, host, drafts, monkeypatch):
    wizard = await open_listing(state)
    uploader = FakeUploader()
    use_uploader(monkeypatch, uploader)

    message = FakeMessage()
    await listing_handlers._store_photo(message, photo())

    assert wizard.form.images == uploader.uploaded
    assert message.answers == ["✅ Photo added (1/6)."]
    assert (await drafts.load()).form.images == uploader.uploaded


async def test_photo_upload_error(state, host, monkeypatch):
    wizard = await open_listing(state)
    use_uploader(monkeypatch, FakeUploader(error=ImageUploadError("Image size must be less than 5MB")))

    message = FakeMessage()
    await listing_handlers._store_photo(message, photo())

    assert message.answers == ["⚠️ Image size must be less than 5MB"]
    assert wizard.form.images == []


async def test_photo_over_limit_is_not_uploaded(state, host, monkeypatch):
    wizard = await open_listing(state)
    await wizard.add_images([f"https://store.example/{i}.jpg" for i in range(6)])
    uploader = FakeUploader()
    use_uploader(monkeypatch, uploader)

    message = FakeMessage()
    await listing_handlers._store_photo(message, photo())

    assert message.answers[0].startswith("⚠️ You can only upload 6 images maximum")
    assert uploader.uploaded == []


async def test_cancel_during_photo_upload(state, host, drafts, monkeypatch):
    wizard = await open_listing(state)

    async def cancel_listing():
        await listing_handlers.on_cancel(FakeCallback("lw:cancel"), state)

    use_uploader(monkeypatch, FakeUploader(on_upload=cancel_listing))

    message = FakeMessage()
    await listing_handlers._store_photo(message, photo())

    assert message.answers == [listing_handlers.SESSION_ENDED]
    assert not wizard.is_open
    assert await drafts.load() is None


async def test_photo_not_added_to_reopened_listing(state, host, drafts, monkeypatch):
    wizard = await open_listing(state)

    async def reopen_listing():
        await listing_handlers.on_cancel(FakeCallback("lw:cancel"), state)
        await listing_handlers.cmd_newlisting(FakeMessage("/newlisting"), state)

    use_uploader(monkeypatch, FakeUploader(on_upload=reopen_listing))

    message = FakeMessage()
    await listing_handlers._store_photo(message, photo())

    assert message.answers == [listing_handlers.SESSION_ENDED]
    assert listing_handlers._wizards[USER_ID] is wizard
    assert wizard.is_open
    assert wizard.form.images == []
    assert await drafts.load() is None
