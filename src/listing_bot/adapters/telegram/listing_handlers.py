"""
Telegram handlers for the listing wizard.

Flow:
  /newlisting           → open (or resume) the new-listing wizard
  /editlisting <id>     → open an existing listing for editing
  /mylistings           → list the host's listings with their status
  inline buttons (lw:*) → edit fields, navigate steps, manage photos, submit

The form itself is held by a core ListingWizard, one per Telegram user.
The aiogram FSM only tracks whether the next message is a field value,
a photo, or nothing in particular.
"""

import logging

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from listing_bot.adapters.telegram.formatters import (
    FIELD_PROMPTS,
    format_errors,
    format_listing_list,
    format_listing_summary,
    format_step_screen,
)
from listing_bot.adapters.telegram.fsm_states import ListingForm
from listing_bot.adapters.telegram.keyboards import (
    amenities_keyboard,
    nearby_services_keyboard,
    photos_done_keyboard,
    property_type_keyboard,
    step_keyboard,
)
from listing_bot.config import settings
from listing_bot.core.draft_store import DraftStore, SqlStorage
from listing_bot.core.errors import ImageLimitError, WizardClosedError
from listing_bot.core.form_state import AMENITY_LABELS, NEARBY_SERVICE_LABELS, TEXT_FIELDS, PropertyType
from listing_bot.core.submission import PropertySubmitter, form_from_property
from listing_bot.core.wizard import ListingWizard, SubmitStatus
from listing_bot.db.repositories import get_host_properties, get_host_property, get_or_create_user
from listing_bot.db.session import async_session_factory
from listing_bot.services.image_upload import ImageFile, ImageUploader, ImageUploadError

logger = logging.getLogger(__name__)
router = Router(name="listing_handlers")

# Telegram user id → wizard
_wizards: dict[int, ListingWizard] = {}
_uploader: ImageUploader | None = None

CLEAR_VALUE = "-"
SESSION_ENDED = "This listing session has ended. Send /newlisting to start again."


def get_uploader() -> ImageUploader:
    global _uploader
    if _uploader is None:
        _uploader = ImageUploader(
            storage_url=settings.storage_url,
            api_key=settings.storage_api_key,
            bucket=settings.storage_bucket,
            compress_url=settings.image_compress_url,
            timeout=settings.upload_timeout,
        )
    return _uploader


async def close_uploader() -> None:
    global _uploader
    if _uploader is not None:
        await _uploader.close()
        _uploader = None


def _wizard_for_user(telegram_id: int, host_id: int) -> ListingWizard:
    """The user's wizard, reused while closed so a pending draft cleanup carries over."""
    wizard = _wizards.get(telegram_id)
    if wizard is not None and wizard.submitter.host_id == host_id:
        return wizard

    drafts = DraftStore(
        SqlStorage(async_session_factory),
        f"telegram:{telegram_id}",
        prefix=settings.draft_key_prefix,
    )
    submitter = PropertySubmitter(
        async_session_factory, host_id=host_id, country=settings.default_country
    )
    wizard = ListingWizard(drafts, submitter, max_images=settings.max_images)
    _wizards[telegram_id] = wizard
    return wizard


def _open_wizard(telegram_id: int) -> ListingWizard | None:
    wizard = _wizards.get(telegram_id)
    if wizard is None or not wizard.is_open:
        return None
    return wizard


def _screen(wizard: ListingWizard, notice: str = "") -> str:
    return format_step_screen(
        wizard.step,
        wizard.form,
        wizard.progress,
        editing=wizard.is_editing_existing,
        notice=notice,
    )


async def _show(target: Message, wizard: ListingWizard, notice: str = "", *, edit: bool = True) -> None:
    """Render the current step, editing `target` in place or as a new message."""
    text = _screen(wizard, notice)
    keyboard = step_keyboard(wizard.step, wizard.form)
    if edit:
        await target.edit_text(text, reply_markup=keyboard)
    else:
        await target.answer(text, reply_markup=keyboard)


async def _wizard_for_callback(callback: CallbackQuery) -> ListingWizard | None:
    wizard = _open_wizard(callback.from_user.id)
    if wizard is None:
        await callback.answer(SESSION_ENDED, show_alert=True)
    return wizard


# ── Commands ─────────────────────────────────────────────────


@router.message(Command("newlisting"))
async def cmd_newlisting(message: Message, state: FSMContext) -> None:
    """Open the wizard for a new listing, resuming a saved draft if there is one."""
    tg_user = message.from_user
    if tg_user is None:
        return

    wizard = _open_wizard(tg_user.id)
    if wizard is not None:
        await state.set_state(ListingForm.browsing)
        await _show(message, wizard, "You already have a listing open.", edit=False)
        return

    async with async_session_factory() as session:
        user = await get_or_create_user(
            session, telegram_id=tg_user.id, full_name=tg_user.full_name or "Unknown"
        )
        await session.commit()

    wizard = _wizard_for_user(tg_user.id, user.id)
    restored = await wizard.open_new()
    await state.set_state(ListingForm.browsing)
    notice = "📝 Your saved draft has been restored." if restored else ""
    await _show(message, wizard, notice, edit=False)


@router.message(Command("editlisting"))
async def cmd_editlisting(message: Message, command: CommandObject, state: FSMContext) -> None:
    """/editlisting <id> — edit one of your listings."""
    tg_user = message.from_user
    if tg_user is None:
        return

    if not command.args or not command.args.strip().isdigit():
        await message.answer("Usage: /editlisting <code>&lt;id&gt;</code>\nSee /mylistings for ids.")
        return

    if _open_wizard(tg_user.id) is not None:
        await message.answer("❗ Finish or cancel the listing you are editing first.")
        return

    property_id = int(command.args.strip())
    async with async_session_factory() as session:
        user = await get_or_create_user(
            session, telegram_id=tg_user.id, full_name=tg_user.full_name or "Unknown"
        )
        await session.commit()
        prop = await get_host_property(session, property_id, user.id)

    if prop is None:
        await message.answer("❌ Listing not found.")
        return

    wizard = _wizard_for_user(tg_user.id, user.id)
    wizard.open_existing(prop.id, form_from_property(prop, prop.address))
    logger.info("User %d editing listing %d", tg_user.id, prop.id)

    await state.set_state(ListingForm.browsing)
    await _show(message, wizard, edit=False)


@router.message(Command("mylistings"))
async def cmd_mylistings(message: Message) -> None:
    tg_user = message.from_user
    if tg_user is None:
        return

    async with async_session_factory() as session:
        user = await get_or_create_user(
            session, telegram_id=tg_user.id, full_name=tg_user.full_name or "Unknown"
        )
        await session.commit()
        properties = await get_host_properties(session, user.id)

    await message.answer(format_listing_list(list(properties)))


# ── Field input ──────────────────────────────────────────────


@router.callback_query(F.data.startswith("lw:field:"))
async def on_field(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    name = callback.data.split(":", 2)[2]
    if name not in TEXT_FIELDS or name not in FIELD_PROMPTS:
        await callback.answer()
        return

    await state.set_state(ListingForm.entering_value)
    await state.update_data(field=name)
    await callback.message.answer(FIELD_PROMPTS[name])
    await callback.answer()


@router.message(ListingForm.entering_value, F.text)
async def on_field_value(message: Message, state: FSMContext) -> None:
    wizard = _open_wizard(message.from_user.id)
    if wizard is None:
        await state.clear()
        await message.answer(SESSION_ENDED)
        return

    data = await state.get_data()
    name = data.get("field")
    value = message.text.strip()
    if value == CLEAR_VALUE:
        value = ""

    if name:
        await wizard.update_field(name, value)
    await state.set_state(ListingForm.browsing)
    await _show(message, wizard, edit=False)


# ── Property type / amenities / nearby services ──────────────


@router.callback_query(F.data == "lw:ptype")
async def on_property_type_menu(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return
    await callback.message.edit_text(
        "🏠 <b>Choose the property type:</b>",
        reply_markup=property_type_keyboard(wizard.form.property_type),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("lw:ptype:"))
async def on_property_type(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    type_name = callback.data.split(":", 2)[2]
    if type_name not in PropertyType.__members__:
        await callback.answer()
        return

    await wizard.update_field("property_type", PropertyType[type_name].value)
    await _show(callback.message, wizard)
    await callback.answer()


@router.callback_query(F.data == "lw:amen")
async def on_amenities_menu(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return
    await callback.message.edit_text(
        "⚡ <b>Amenities</b>\nTap to select, then press Done.",
        reply_markup=amenities_keyboard(wizard.form.amenities),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("lw:amen:"))
async def on_amenity_toggle(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    key = callback.data.split(":", 2)[2]
    if key not in AMENITY_LABELS:
        await callback.answer()
        return

    await wizard.toggle_amenity(key)
    await callback.message.edit_reply_markup(reply_markup=amenities_keyboard(wizard.form.amenities))
    await callback.answer()


@router.callback_query(F.data == "lw:svc")
async def on_nearby_menu(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return
    await callback.message.edit_text(
        "🏫 <b>Nearby services</b>\nTap to select, then press Done.",
        reply_markup=nearby_services_keyboard(wizard.form.nearby_services),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("lw:svc:"))
async def on_nearby_toggle(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    key = callback.data.split(":", 2)[2]
    if key not in NEARBY_SERVICE_LABELS:
        await callback.answer()
        return

    await wizard.toggle_nearby_service(key)
    await callback.message.edit_reply_markup(
        reply_markup=nearby_services_keyboard(wizard.form.nearby_services)
    )
    await callback.answer()


@router.callback_query(F.data == "lw:show")
async def on_show(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return
    await state.set_state(ListingForm.browsing)
    await _show(callback.message, wizard)
    await callback.answer()


# ── Navigation ───────────────────────────────────────────────


@router.callback_query(F.data == "lw:next")
async def on_next(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    if not await wizard.next():
        await callback.answer("Fill in the required fields on this step first.", show_alert=True)
        return
    await _show(callback.message, wizard)
    await callback.answer()


@router.callback_query(F.data == "lw:prev")
async def on_previous(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    if await wizard.previous():
        await _show(callback.message, wizard)
    await callback.answer()


@router.callback_query(F.data.startswith("lw:goto:"))
async def on_goto(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    raw = callback.data.split(":", 2)[2]
    target = int(raw) if raw.isdigit() else 0
    if target == wizard.step:
        await callback.answer()
        return
    if not await wizard.jump_to(target):
        await callback.answer("Complete the earlier steps first.", show_alert=True)
        return
    await _show(callback.message, wizard)
    await callback.answer()


# ── Photos ───────────────────────────────────────────────────


@router.callback_query(F.data == "lw:photos")
async def on_photos(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    try:
        wizard.ensure_image_capacity(1)
    except ImageLimitError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await state.set_state(ListingForm.uploading_photos)
    await callback.message.answer(
        f"📷 Send up to {wizard.images.remaining} more photo(s).\n"
        "JPG, PNG or WebP, up to 5 MB each. Press Done when finished.",
        reply_markup=photos_done_keyboard(),
    )
    await callback.answer()


async def _store_photo(message: Message, file: ImageFile) -> None:
    wizard = _open_wizard(message.from_user.id)
    if wizard is None:
        await message.answer(SESSION_ENDED)
        return

    form = wizard.form
    try:
        wizard.ensure_image_capacity(1)
        url = await get_uploader().upload(file, str(message.from_user.id))
        # The session may have been cancelled or replaced during the upload
        if _open_wizard(message.from_user.id) is not wizard or wizard.form is not form:
            raise WizardClosedError("Listing closed during photo upload")
        await wizard.add_images([url])
    except WizardClosedError:
        logger.info("Dropped photo for user %d, listing closed during upload", message.from_user.id)
        await message.answer(SESSION_ENDED)
        return
    except ImageLimitError as e:
        await message.answer(f"⚠️ {e}")
        return
    except ImageUploadError as e:
        logger.warning("Photo upload failed for user %d: %s", message.from_user.id, e)
        await message.answer(f"⚠️ {e}")
        return

    await message.answer(
        f"✅ Photo added ({len(wizard.images)}/{wizard.max_images}).",
        reply_markup=photos_done_keyboard(),
    )


async def _download(bot: Bot, file_id: str) -> bytes:
    file = await bot.get_file(file_id)
    if file.file_path is None:
        raise ImageUploadError("Could not download the photo from Telegram")
    result = await bot.download_file(file.file_path)
    if result is None:
        raise ImageUploadError("Could not download the photo from Telegram")
    return result.read()


@router.message(ListingForm.uploading_photos, F.photo)
async def on_photo(message: Message, bot: Bot) -> None:
    # Largest size is last
    photo = message.photo[-1]
    try:
        content = await _download(bot, photo.file_id)
    except ImageUploadError as e:
        await message.answer(f"⚠️ {e}")
        return
    await _store_photo(
        message, ImageFile(filename=f"{photo.file_unique_id}.jpg", content=content)
    )


@router.message(ListingForm.uploading_photos, F.document)
async def on_photo_document(message: Message, bot: Bot) -> None:
    document = message.document
    mime_type = document.mime_type or ""
    if not mime_type.startswith("image/"):
        await message.answer("⚠️ Please send an image (JPG, PNG or WebP).")
        return
    try:
        content = await _download(bot, document.file_id)
    except ImageUploadError as e:
        await message.answer(f"⚠️ {e}")
        return
    filename = document.file_name or f"{document.file_unique_id}.jpg"
    await _store_photo(
        message, ImageFile(filename=filename, content=content, mime_type=mime_type)
    )


@router.callback_query(F.data.startswith("lw:rmphoto:"))
async def on_remove_photo(callback: CallbackQuery) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    raw = callback.data.split(":", 2)[2]
    removed = raw.isdigit() and await wizard.remove_image(int(raw))
    if removed:
        await _show(callback.message, wizard)
        await callback.answer("Photo removed")
    else:
        await callback.answer()


# ── Submit / cancel ──────────────────────────────────────────


@router.callback_query(F.data == "lw:submit")
async def on_submit(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await _wizard_for_callback(callback)
    if wizard is None:
        return

    editing = wizard.is_editing_existing
    outcome = await wizard.submit()

    if outcome.status is SubmitStatus.SUBMITTED:
        await state.clear()
        heading = "✅ <b>Listing updated!</b>" if editing else "✅ <b>Listing submitted for review!</b>"
        await callback.message.edit_text(f"{heading}\n\n{format_listing_summary(outcome.listing)}")
        await callback.answer()
    elif outcome.status is SubmitStatus.BUSY:
        await callback.answer("Already saving, please wait…")
    elif outcome.status is SubmitStatus.NOT_READY:
        await callback.answer("Go to the last step to submit.", show_alert=True)
    elif outcome.status is SubmitStatus.DISCARDED:
        await callback.answer()
    else:
        if outcome.status is SubmitStatus.INCOMPLETE:
            title = "Please complete the listing:"
        else:
            title = "Could not save the listing:"
        await _show(callback.message, wizard, format_errors(title, outcome.errors))
        await callback.answer()


@router.callback_query(F.data == "lw:cancel")
async def on_cancel(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = _open_wizard(callback.from_user.id)
    if wizard is not None:
        await wizard.cancel()
    await state.clear()
    await callback.message.edit_text("❌ Listing cancelled.")
    await callback.answer()
