"""
Step and full-form validity for the listing wizard.

Both the per-step check (gates "Next") and the full-form check (gates
submission) are derived from one requirement table, so they cannot
drift apart. The progress percentage is a separate, cosmetic metric and
is never used for gating.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from listing_bot.core.form_state import FormState, WizardStep
from listing_bot.core.images import MIN_IMAGES


@dataclass(frozen=True)
class FieldRequirement:
    """One required field: the step it belongs to and how to check it."""

    field: str
    step: WizardStep
    check: Callable[[FormState], bool]
    message: str


def _filled(name: str) -> Callable[[FormState], bool]:
    def check(form: FormState) -> bool:
        return bool(getattr(form, name).strip())

    return check


def _enough_images(form: FormState) -> bool:
    return len(form.images) >= MIN_IMAGES


REQUIREMENTS: tuple[FieldRequirement, ...] = (
    FieldRequirement("title", WizardStep.BASIC_INFO, _filled("title"), "Title is required"),
    FieldRequirement("price", WizardStep.BASIC_INFO, _filled("price"), "Price is required"),
    FieldRequirement("location", WizardStep.BASIC_INFO, _filled("location"), "Location is required"),
    FieldRequirement("description", WizardStep.DETAILS, _filled("description"), "Description is required"),
    FieldRequirement("property_type", WizardStep.DETAILS, _filled("property_type"), "Choose a property type"),
    FieldRequirement("contact_phone", WizardStep.CONTACT, _filled("contact_phone"), "Contact phone is required"),
    FieldRequirement(
        "images", WizardStep.PHOTOS, _enough_images, f"Add at least {MIN_IMAGES} photos",
    ),
)

# Fields counted by the progress bar; images only need to be non-empty here
_PROGRESS_FIELDS = ("title", "price", "location", "description", "contact_phone", "property_type")
_PROGRESS_TOTAL = len(_PROGRESS_FIELDS) + 1


def _coerce_step(step: Any) -> WizardStep | None:
    if isinstance(step, bool) or not isinstance(step, int):
        return None
    try:
        return WizardStep(step)
    except ValueError:
        return None


def requirements_for(step: WizardStep) -> list[FieldRequirement]:
    return [req for req in REQUIREMENTS if req.step == step]


def is_step_valid(step: Any, form: FormState) -> bool:
    """True if every required field of `step` is filled. Unknown steps are invalid."""
    wizard_step = _coerce_step(step)
    if wizard_step is None:
        return False
    return all(req.check(form) for req in requirements_for(wizard_step))


def missing_fields(form: FormState) -> list[FieldRequirement]:
    """Every requirement that does not hold, each checked independently."""
    return [req for req in REQUIREMENTS if not req.check(form)]


def is_form_complete(form: FormState) -> bool:
    return not missing_fields(form)


def progress_percent(form: FormState) -> float:
    completed = sum(1 for name in _PROGRESS_FIELDS if getattr(form, name))
    if form.images:
        completed += 1
    return completed / _PROGRESS_TOTAL * 100
