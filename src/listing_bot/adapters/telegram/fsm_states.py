"""
Telegram-specific FSM state definitions using aiogram's StatesGroup.

The listing form itself (fields, step, draft) lives in the core
ListingWizard. These states only track what kind of input the chat is
waiting for right now.
"""

from aiogram.fsm.state import State, StatesGroup


class ListingForm(StatesGroup):
    """
    States for the listing wizard conversation.

    FSM data keys used:
      field — form field the next text message is written to
    """

    browsing = State()           # Step screen shown, waiting for a button
    entering_value = State()     # Waiting for text for one field
    uploading_photos = State()   # Waiting for photos on the Photos step
