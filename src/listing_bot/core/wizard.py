"""
Listing wizard controller.

Drives the four-step listing form:

  Basic Info → Details → Contact → Photos → submit

The wizard is always in exactly one of three states:

  Closed                                  — nothing being edited
  EditingDraft(step, form)                — new listing, mirrored to the draft store
  EditingExisting(step, form, property_id) — editing a saved listing, never persisted

Every form mutation goes through the controller, which saves the draft
afterwards when (and only when) a new listing is being edited. "Next" is
gated by step validity; submission is gated by the full-form check.

Platform adapters own one ListingWizard per user and call its methods
from their handlers.
"""

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from listing_bot.core.draft_store import DraftStore
from listing_bot.core.errors import SubmissionError, WizardClosedError
from listing_bot.core.form_state import FIRST_STEP, LAST_STEP, FormState, WizardStep
from listing_bot.core.images import DEFAULT_MAX_IMAGES, ImageCollection
from listing_bot.core.submission import ListingSubmitter, SubmissionMode
from listing_bot.core.validation import (
    FieldRequirement,
    is_step_valid,
    missing_fields,
    progress_percent,
)
from listing_bot.db.models import Property

logger = logging.getLogger(__name__)


# ── Wizard states ────────────────────────────────────────────


@dataclass(frozen=True)
class Closed:
    pass


@dataclass(eq=False)
class EditingDraft:
    step: WizardStep
    form: FormState


@dataclass(eq=False)
class EditingExisting:
    step: WizardStep
    form: FormState
    property_id: int


WizardState = Union[Closed, EditingDraft, EditingExisting]
CLOSED = Closed()


# ── Submit outcome ───────────────────────────────────────────


class SubmitStatus(str, enum.Enum):
    SUBMITTED = "submitted"    # saved, wizard closed
    INCOMPLETE = "incomplete"  # required fields missing, nothing sent
    FAILED = "failed"          # save failed, form and draft kept for retry
    NOT_READY = "not_ready"    # not on the last step
    BUSY = "busy"              # a submission is already in flight
    DISCARDED = "discarded"    # wizard was closed/reopened while saving


@dataclass
class SubmitOutcome:
    status: SubmitStatus
    listing: Property | None = None
    missing: list[FieldRequirement] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is SubmitStatus.SUBMITTED


# ── Controller ───────────────────────────────────────────────


class ListingWizard:
    """Multi-step listing form for one user session."""

    def __init__(
        self,
        drafts: DraftStore,
        submitter: ListingSubmitter,
        *,
        max_images: int = DEFAULT_MAX_IMAGES,
    ) -> None:
        self.drafts = drafts
        self.submitter = submitter
        self.max_images = max_images
        self._state: WizardState = CLOSED
        self._submitting = False
        self._stale_draft = False

    # ── State accessors ──────────────────────────────────────

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def is_open(self) -> bool:
        return not isinstance(self._state, Closed)

    @property
    def is_editing_existing(self) -> bool:
        return isinstance(self._state, EditingExisting)

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def _open_state(self) -> EditingDraft | EditingExisting:
        if isinstance(self._state, Closed):
            raise WizardClosedError("The listing wizard is not open")
        return self._state

    @property
    def step(self) -> WizardStep:
        return self._open_state().step

    @property
    def form(self) -> FormState:
        return self._open_state().form

    @property
    def images(self) -> ImageCollection:
        return ImageCollection(self.form.images, max_images=self.max_images)

    @property
    def progress(self) -> float:
        """Cosmetic completion percentage for the progress bar."""
        return progress_percent(self.form)

    def is_step_valid(self, step: Any = None) -> bool:
        return is_step_valid(self.step if step is None else step, self.form)

    def missing_fields(self) -> list[FieldRequirement]:
        return missing_fields(self.form)

    # ── Opening and closing ──────────────────────────────────

    async def open_new(self) -> bool:
        """
        Start a new listing, restoring the saved draft if there is one.

        Returns True when a draft was restored. Does nothing if the
        wizard is already open.
        """
        if self.is_open:
            return False

        state = EditingDraft(step=FIRST_STEP, form=FormState())
        self._state = state

        if self._stale_draft:
            await self._discard_draft()
            if self._stale_draft:
                return False

        try:
            draft = await self.drafts.load()
        except Exception as e:
            logger.error("Loading listing draft for %s failed: %s", self.drafts.scope, e)
            return False
        if draft is None:
            return False

        for name, value in draft.form.to_dict().items():
            state.form.set_field(name, value)
        state.step = draft.step
        logger.info("Restored listing draft for %s at step %d", self.drafts.scope, state.step)
        return True

    def open_existing(self, property_id: int, form: FormState) -> None:
        """Start editing a saved listing. Drafts are not touched in this mode."""
        if self.is_open:
            raise RuntimeError("Close the current listing before editing another one")
        self._state = EditingExisting(step=FIRST_STEP, form=form, property_id=property_id)

    async def cancel(self) -> None:
        """Close the wizard and throw away the new-listing draft."""
        state = self._state
        self._state = CLOSED
        if isinstance(state, EditingDraft):
            await self._discard_draft()

    # ── Form mutations ───────────────────────────────────────

    async def update_field(self, name: str, value: Any) -> None:
        self.form.set_field(name, value)
        await self._save_draft()

    async def toggle_amenity(self, key: str) -> bool:
        selected = self.form.toggle("amenities", key)
        await self._save_draft()
        return selected

    async def toggle_nearby_service(self, key: str) -> bool:
        selected = self.form.toggle("nearby_services", key)
        await self._save_draft()
        return selected

    def ensure_image_capacity(self, count: int = 1) -> None:
        """Raise ImageLimitError before uploading if `count` more images will not fit."""
        self.images.ensure_capacity(count)

    async def add_images(self, urls: Sequence[str]) -> None:
        """Append uploaded image URLs. All-or-nothing; raises ImageLimitError."""
        self.images.add(urls)
        await self._save_draft()

    async def remove_image(self, index: int) -> bool:
        removed = self.images.remove(index)
        if removed:
            await self._save_draft()
        return removed

    # ── Navigation ───────────────────────────────────────────

    async def next(self) -> bool:
        state = self._open_state()
        if state.step >= LAST_STEP or not is_step_valid(state.step, state.form):
            return False
        state.step = WizardStep(state.step + 1)
        await self._save_draft()
        return True

    async def previous(self) -> bool:
        state = self._open_state()
        if state.step <= FIRST_STEP:
            return False
        state.step = WizardStep(state.step - 1)
        await self._save_draft()
        return True

    async def jump_to(self, step: int) -> bool:
        """
        Go straight to a step (step indicator).

        Going back is always allowed. Going forward requires every step
        before the target to be valid, the same rule "Next" applies.
        """
        state = self._open_state()
        try:
            target = WizardStep(step)
        except ValueError:
            return False
        if target > state.step and not all(
            is_step_valid(s, state.form) for s in range(FIRST_STEP, target)
        ):
            return False
        if target != state.step:
            state.step = target
            await self._save_draft()
        return True

    # ── Submission ───────────────────────────────────────────

    async def submit(self) -> SubmitOutcome:
        state = self._open_state()
        if state.step != LAST_STEP:
            return SubmitOutcome(SubmitStatus.NOT_READY)
        if self._submitting:
            return SubmitOutcome(SubmitStatus.BUSY)

        missing = missing_fields(state.form)
        if missing:
            return SubmitOutcome(
                SubmitStatus.INCOMPLETE,
                missing=missing,
                errors=[req.message for req in missing],
            )

        if isinstance(state, EditingExisting):
            mode, property_id = SubmissionMode.UPDATE, state.property_id
        else:
            mode, property_id = SubmissionMode.CREATE, None

        self._submitting = True
        try:
            prop = await self.submitter.submit(state.form, mode, property_id)
        except SubmissionError as e:
            logger.warning("Listing submission failed for %s: %s", self.drafts.scope, e.message)
            return SubmitOutcome(SubmitStatus.FAILED, errors=list(e.errors))
        finally:
            self._submitting = False

        if self._state is not state:
            logger.info("Wizard for %s closed during submission, result discarded", self.drafts.scope)
            return SubmitOutcome(SubmitStatus.DISCARDED, listing=prop)

        self._state = CLOSED
        if isinstance(state, EditingDraft):
            await self._discard_draft()
        return SubmitOutcome(SubmitStatus.SUBMITTED, listing=prop)

    # ── Draft mirroring ──────────────────────────────────────

    async def _discard_draft(self) -> None:
        try:
            await self.drafts.clear()
        except Exception as e:
            # Retried before the next draft restore
            self._stale_draft = True
            logger.error("Clearing listing draft for %s failed: %s", self.drafts.scope, e)
        else:
            self._stale_draft = False

    async def _save_draft(self) -> None:
        state = self._state
        if not isinstance(state, EditingDraft):
            return
        try:
            await self.drafts.save(state.form, state.step)
        except Exception as e:
            # The in-memory form is still intact; the next change retries the save
            logger.error("Saving listing draft for %s failed: %s", self.drafts.scope, e)
        else:
            # Stored draft now mirrors the open form
            self._stale_draft = False
