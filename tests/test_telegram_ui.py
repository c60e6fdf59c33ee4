"""Tests for Telegram keyboards and message formatting."""

from decimal import Decimal

from listing_bot.adapters.telegram.formatters import (
    format_listing_list,
    format_listing_summary,
    format_step_screen,
    progress_bar,
)
from listing_bot.adapters.telegram.keyboards import (
    amenities_keyboard,
    property_type_keyboard,
    step_keyboard,
)
from listing_bot.core.form_state import FormState, WizardStep
from listing_bot.db.models import Property, PropertyStatus


def callbacks(markup) -> list[list[str]]:
    return [[button.callback_data for button in row] for row in markup.inline_keyboard]


def test_first_step_keyboard():
    rows = callbacks(step_keyboard(WizardStep.BASIC_INFO, FormState()))
    assert rows == [
        ["lw:field:title"],
        ["lw:field:price"],
        ["lw:field:location"],
        ["lw:goto:1", "lw:goto:2", "lw:goto:3", "lw:goto:4"],
        ["lw:next"],
        ["lw:cancel"],
    ]


def test_step_indicator_marks_completed_steps(complete_form):
    markup = step_keyboard(WizardStep.CONTACT, complete_form)
    indicator = [b.text for b in markup.inline_keyboard[-3]]
    assert indicator == ["✅ 1", "✅ 2", "[3]", "✅ 4"]


def test_photo_step_keyboard(complete_form):
    rows = callbacks(step_keyboard(WizardStep.PHOTOS, complete_form))
    assert rows[0] == ["lw:photos"]
    assert rows[1:4] == [["lw:rmphoto:0"], ["lw:rmphoto:1"], ["lw:rmphoto:2"]]
    assert rows[-2] == ["lw:prev", "lw:submit"]


def test_details_keyboard_has_pickers():
    rows = callbacks(step_keyboard(WizardStep.DETAILS, FormState()))
    assert ["lw:ptype"] in rows
    assert ["lw:amen", "lw:svc"] in rows


def test_property_type_keyboard_marks_selection():
    markup = property_type_keyboard("Studio")
    texts = [row[0].text for row in markup.inline_keyboard]
    assert "✅ Studio" in texts
    assert markup.inline_keyboard[2][0].callback_data == "lw:ptype:SHARED_ROOM"


def test_amenities_keyboard():
    markup = amenities_keyboard({"wifi"})
    buttons = [b for row in markup.inline_keyboard for b in row]
    wifi = next(b for b in buttons if b.callback_data == "lw:amen:wifi")
    assert wifi.text == "✅ WiFi"
    assert buttons[-1].callback_data == "lw:show"


def test_progress_bar():
    assert progress_bar(40) == "▓▓▓▓░░░░░░ 40%"
    assert progress_bar(0) == "░░░░░░░░░░ 0%"


def test_step_screen_lists_missing_fields():
    text = format_step_screen(WizardStep.BASIC_INFO, FormState(title="<Flat>"), 14.3)
    assert "Step 1/4: <b>Basic Info</b>" in text
    assert "&lt;Flat&gt;" in text
    assert "Price is required" in text
    assert "Title is required" not in text


def test_step_screen_edit_mode(complete_form):
    text = format_step_screen(WizardStep.PHOTOS, complete_form, 100, editing=True)
    assert text.startswith("✏️ <b>Edit listing</b>")
    assert "Still needed" not in text


def test_listing_summary_and_list():
    prop = Property(
        id=5,
        title="Villa",
        price=Decimal("1200000"),
        location="Mbezi",
        property_type="House",
        bedrooms=3,
        bathrooms=2,
        images=["a", "b", "c"],
        status=PropertyStatus.REJECTED,
        rejection_reason="Blurry photos",
    )
    summary = format_listing_summary(prop)
    assert "1,200,000 TZS" in summary
    assert "3 photos" in summary

    listing = format_listing_list([prop])
    assert "<b>#5</b> Villa" in listing
    assert "Reason: Blurry photos" in listing
    assert "/newlisting" in format_listing_list([])
