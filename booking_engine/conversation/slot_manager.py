"""
Slot store for booking intent: canonical slot order and overwrite-only merge.

Slots are collected in a fixed order (activity -> date -> time ->
party size -> contact). Both the system prompt and the fallback
responder walk this order, so the dialogue asks for the same thing
next whether or not the model is reachable.

Usage:
    slots = BookingSlots()
    slots = apply_patch(slots, BookingSlots(party_size=4))
    next_slot = get_next_empty_slot(slots)   # SlotName.ACTIVITY
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from booking_engine.schemas.booking_schema import BookingSlots

logger = logging.getLogger(__name__)


class SlotName(str, Enum):
    """Named fields of booking intent, matching BookingSlots attributes."""

    ACTIVITY = "activity_id"
    DATE = "date"
    TIME = "time"
    PARTY_SIZE = "party_size"
    CONTACT = "customer_email"


@dataclass(frozen=True)
class SlotDefinition:
    """Schema for a single slot to collect."""

    name: SlotName
    display_name: str
    prompt_hint: str


SLOT_DEFINITIONS: list[SlotDefinition] = [
    SlotDefinition(
        name=SlotName.ACTIVITY,
        display_name="activity",
        prompt_hint="Help them choose an activity",
    ),
    SlotDefinition(
        name=SlotName.DATE,
        display_name="date",
        prompt_hint="Ask which date they would like",
    ),
    SlotDefinition(
        name=SlotName.TIME,
        display_name="time",
        prompt_hint="Ask what time works best",
    ),
    SlotDefinition(
        name=SlotName.PARTY_SIZE,
        display_name="number of guests",
        prompt_hint="Ask how many people are coming",
    ),
    SlotDefinition(
        name=SlotName.CONTACT,
        display_name="contact email",
        prompt_hint="Ask for their name and email address",
    ),
]

SLOT_ORDER: list[SlotName] = [d.name for d in SLOT_DEFINITIONS]


def get_definition(name: SlotName) -> SlotDefinition:
    for defn in SLOT_DEFINITIONS:
        if defn.name == name:
            return defn
    raise ValueError(f"Unknown slot: {name}")


def apply_patch(current: BookingSlots, patch: BookingSlots) -> BookingSlots:
    """
    Merge an extraction patch into the current slots.

    Every field present in the patch replaces the current value; fields
    the patch leaves empty keep their current value. No cross-field
    validation happens here.
    """
    updates = patch.filled()
    if not updates:
        return current
    logger.debug("Slot update: %s", sorted(updates))
    return current.model_copy(update=updates)


def is_filled(slots: BookingSlots, name: SlotName) -> bool:
    return getattr(slots, name.value) is not None


def get_missing_slots(slots: BookingSlots) -> list[SlotName]:
    """All unfilled slots, in collection order."""
    return [name for name in SLOT_ORDER if not is_filled(slots, name)]


def get_next_empty_slot(slots: BookingSlots) -> Optional[SlotName]:
    """The earliest unfilled slot, or None when everything is collected."""
    missing = get_missing_slots(slots)
    return missing[0] if missing else None


def all_filled(slots: BookingSlots) -> bool:
    return not get_missing_slots(slots)


def get_stats(slots: BookingSlots) -> dict[str, float]:
    """Slot collection statistics for logging and the console demo."""
    required = len(SLOT_ORDER)
    filled = required - len(get_missing_slots(slots))
    return {
        "slots_filled": filled,
        "slots_required": required,
        "fill_rate": filled / required,
    }
