"""
Telegram-specific message formatters — HTML output.

These functions format wizard and listing data into HTML strings
suitable for Telegram's HTML parse mode.

Core services return raw data or plain text. All HTML formatting
belongs here, never in core/.
"""

from html import escape

from listing_bot.adapters.telegram.keyboards import FIELD_LABELS
from listing_bot.core.form_state import (
    AMENITY_LABELS,
    NEARBY_SERVICE_LABELS,
    FormState,
    WizardStep,
)
from listing_bot.core.images import MIN_IMAGES
from listing_bot.core.validation import requirements_for
from listing_bot.db.models import Property, PropertyStatus

FIELD_PROMPTS: dict[str, str] = {
    "title": "✏️ Send the listing title (e.g. <i>Modern 2-bedroom apartment in Masaki</i>):",
    "price": "💰 Send the monthly price in TZS (numbers only, e.g. <i>850000</i>):",
    "location": "📍 Send the location (area or neighbourhood):",
    "description": "📝 Describe the property:",
    "bedrooms": "🛏 How many bedrooms?",
    "bathrooms": "🛁 How many bathrooms?",
    "square_meters": "📐 Size in square meters (or send <code>-</code> to clear):",
    "contact_phone": "📞 Send the contact phone with country code (e.g. <code>+255712345678</code>):",
    "contact_whatsapp_phone": "💬 Send the WhatsApp number (or <code>-</code> to clear):",
    "full_address": (
        "🏠 Send the full address, one part per line:\n"
        "<i>street\narea\ncity\nregion\npostal code</i>"
    ),
}

STATUS_LABELS = {
    PropertyStatus.PENDING: "⏳ Pending review",
    PropertyStatus.APPROVED: "✅ Approved",
    PropertyStatus.REJECTED: "❌ Rejected",
    PropertyStatus.ARCHIVED: "📦 Archived",
}


def progress_bar(percent: float, width: int = 10) -> str:
    """Text progress bar like ▓▓▓▓░░░░░░ 40%."""
    filled = round(percent / 100 * width)
    return f"{'▓' * filled}{'░' * (width - filled)} {percent:.0f}%"


def _value(text: str) -> str:
    return escape(text.strip()) if text.strip() else "—"


def _labels(keys: set[str], labels: dict[str, str]) -> str:
    if not keys:
        return "—"
    return ", ".join(labels.get(key, key) for key in sorted(keys))


def format_step_screen(
    step: WizardStep,
    form: FormState,
    progress: float,
    *,
    editing: bool = False,
    notice: str = "",
) -> str:
    """The message shown for the current wizard step."""
    heading = "✏️ <b>Edit listing</b>" if editing else "🏠 <b>New listing</b>"
    lines = [
        heading,
        f"Step {step.value}/{len(WizardStep)}: <b>{step.label}</b>",
        progress_bar(progress),
        "",
    ]

    if step == WizardStep.BASIC_INFO:
        for name in ("title", "price", "location"):
            lines.append(f"{FIELD_LABELS[name]}: {_value(getattr(form, name))}")
    elif step == WizardStep.DETAILS:
        for name in ("description", "property_type", "bedrooms", "bathrooms", "square_meters"):
            lines.append(f"{FIELD_LABELS[name]}: {_value(getattr(form, name))}")
        lines.append(f"Amenities: {_labels(form.amenities, AMENITY_LABELS)}")
        lines.append(f"Nearby: {_labels(form.nearby_services, NEARBY_SERVICE_LABELS)}")
    elif step == WizardStep.CONTACT:
        for name in ("contact_phone", "contact_whatsapp_phone", "full_address"):
            lines.append(f"{FIELD_LABELS[name]}: {_value(getattr(form, name))}")
    else:
        lines.append(f"Photos: {len(form.images)} (minimum {MIN_IMAGES})")
        if form.images:
            lines.append("The first photo is used as the main image.")

    missing = [req.message for req in requirements_for(step) if not req.check(form)]
    if missing:
        lines.append("")
        lines.append("<b>Still needed:</b>")
        lines.extend(f"• {msg}" for msg in missing)

    if notice:
        lines.append("")
        lines.append(notice)

    return "\n".join(lines)


def format_errors(title: str, errors: list[str]) -> str:
    lines = [f"⚠️ <b>{escape(title)}</b>"]
    lines.extend(f"• {escape(err)}" for err in errors)
    return "\n".join(lines)


def format_listing_summary(prop: Property) -> str:
    """Summary shown after a listing has been submitted."""
    lines = [
        f"🏠 <b>{escape(prop.title)}</b>",
        "",
        f"💰 {prop.price:,.0f} TZS / month",
        f"📍 {escape(prop.location)}",
        f"🏷 {escape(prop.property_type)} · {prop.bedrooms} bd · {prop.bathrooms} ba",
    ]
    if prop.square_meters:
        lines.append(f"📐 {prop.square_meters} m²")
    if prop.contact_phone:
        lines.append(f"📞 {escape(prop.contact_phone)}")
    lines.append(f"📷 {len(prop.images or [])} photos")
    lines.append("")
    lines.append(f"Status: {STATUS_LABELS.get(prop.status, prop.status.value)}")
    return "\n".join(lines)


def format_listing_list(properties: list[Property]) -> str:
    if not properties:
        return "📭 You have no listings yet.\n\nCreate one with /newlisting"

    lines = ["📋 <b>Your listings:</b>", ""]
    for prop in properties:
        lines.append(
            f"<b>#{prop.id}</b> {escape(prop.title)} — {prop.price:,.0f} TZS\n"
            f"    {STATUS_LABELS.get(prop.status, prop.status.value)}"
        )
        if prop.status == PropertyStatus.REJECTED and prop.rejection_reason:
            lines.append(f"    Reason: {escape(prop.rejection_reason)}")
    lines.append("")
    lines.append("Edit a listing with /editlisting &lt;id&gt;")
    return "\n".join(lines)
