"""
Exceptions raised by the listing wizard core.

Core modules raise these; platform adapters (Telegram, admin API) catch
them and turn them into user-facing messages.
"""


class WizardError(Exception):
    """Base class for listing wizard errors."""


class WizardClosedError(WizardError, RuntimeError):
    """An operation needs an open wizard, but the wizard is closed."""


class UnknownFieldError(WizardError, KeyError):
    """A form field name that FormState does not have."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown listing form field: {self.name!r}"


class ImageLimitError(WizardError):
    """Adding images would exceed the allowed maximum."""

    def __init__(self, current: int, requested: int, max_images: int) -> None:
        self.current = current
        self.requested = requested
        self.max_images = max_images
        super().__init__(
            f"You can only upload {max_images} images maximum. "
            f"Currently have {current}, tried to add {requested}."
        )


class SubmissionError(WizardError):
    """Creating or updating the listing failed. The form is left intact."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or [message]
