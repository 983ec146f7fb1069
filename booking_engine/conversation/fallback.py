"""
Deterministic fallback responder used when the model is unavailable.

Walks the slots in collection order and asks about the first one that
is still empty. Once everything is filled it returns the checkout
message carrying the completion marker, so a conversation can reach
checkout with no model at all.
"""

import logging
from typing import Iterable, Optional

from booking_engine.conversation.slot_manager import SlotName, get_next_empty_slot
from booking_engine.prompts.system_prompts import CHECKOUT_MARKER
from booking_engine.schemas.booking_schema import Activity, BookingSlots
from booking_engine.tools.activities import format_price

logger = logging.getLogger(__name__)

TROUBLE_MESSAGE = (
    "I apologize, but I'm having trouble processing your request. Please try again."
)

CHECKOUT_MESSAGE = (
    f"{CHECKOUT_MARKER}\nYour booking is ready! Click the button below to proceed to checkout."
)

# How many grid times to offer in the time question
MAX_TIMES_OFFERED = 5


def _ask_activity(activities: list[Activity]) -> str:
    if not activities:
        return "Which activity would you like to book?"
    listing = "\n".join(f"• {a.name} - {format_price(a.price)}" for a in activities)
    return f"Great! Here are our available activities:\n\n{listing}\n\nWhich one would you like to book?"


def _ask_date() -> str:
    return (
        "Excellent choice! When would you like to book? "
        'You can say something like "tomorrow" or "Saturday".'
    )


def _ask_time(time_slots: Optional[list[str]]) -> str:
    if not time_slots:
        return "Perfect! What time works best for you?"
    step = max(1, len(time_slots) // MAX_TIMES_OFFERED)
    offered = time_slots[::step][:MAX_TIMES_OFFERED]
    if len(offered) == 1:
        listing = offered[0]
    else:
        listing = ", ".join(offered[:-1]) + f", and {offered[-1]}"
    return f"Perfect! What time works best for you? We have slots available at {listing}."


def _ask_party_size() -> str:
    return "Great! How many people will be joining you?"


def _ask_contact() -> str:
    return "Almost there! Please provide your name and email address to complete the booking."


def respond(
    slots: BookingSlots,
    activities: Iterable[Activity],
    time_slots: Optional[Iterable[str]] = None,
) -> str:
    """Return the clarifying question for the earliest unfilled slot."""
    next_slot = get_next_empty_slot(slots)
    logger.debug("Fallback reply for slot: %s", next_slot)

    if next_slot == SlotName.ACTIVITY:
        return _ask_activity(list(activities))
    if next_slot == SlotName.DATE:
        return _ask_date()
    if next_slot == SlotName.TIME:
        return _ask_time(list(time_slots) if time_slots is not None else None)
    if next_slot == SlotName.PARTY_SIZE:
        return _ask_party_size()
    if next_slot == SlotName.CONTACT:
        return _ask_contact()
    return CHECKOUT_MESSAGE
