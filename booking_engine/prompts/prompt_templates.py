"""Line builders for context-aware system prompt sections."""

from typing import Iterable, Optional

from booking_engine.conversation.slot_manager import SLOT_DEFINITIONS, get_next_empty_slot
from booking_engine.schemas.agent_schema import FAQ
from booking_engine.schemas.booking_schema import Activity, BookingSlots
from booking_engine.tools.activities import find_activity, format_price


def build_activity_catalog(activities: Iterable[Activity], show_prices: bool = True) -> str:
    """One line per activity: name, duration and (optionally) price."""
    lines: list[str] = []
    for activity in activities:
        details: list[str] = []
        if activity.duration:
            details.append(f"{activity.duration} min")
        if show_prices:
            details.append(format_price(activity.price))
        suffix = f" ({', '.join(details)})" if details else ""
        lines.append(f"- {activity.name}{suffix}")
    if not lines:
        return "- No activities are currently listed. Offer to take the customer's details."
    return "\n".join(lines)


def build_faq_block(faqs: Iterable[FAQ]) -> str:
    return "\n\n".join(f"Q: {faq.question}\nA: {faq.answer}" for faq in faqs)


def describe_slot_value(field: str, slots: BookingSlots, activities: Iterable[Activity]) -> Optional[str]:
    """Human-readable value of one slot, or None if unfilled."""
    value = getattr(slots, field)
    if value is None:
        return None
    if field == "activity_id":
        activity = find_activity(value, list(activities))
        return activity.name if activity else value
    if field == "date":
        return f"{value:%A} {value.isoformat()}"
    return str(value)


def build_collected_slots_block(slots: BookingSlots, activities: Iterable[Activity]) -> str:
    """Summarise what has been collected and what to ask for next."""
    catalog = list(activities)
    parts: list[str] = []
    collected = [
        (defn.display_name, describe_slot_value(defn.name.value, slots, catalog))
        for defn in SLOT_DEFINITIONS
    ]
    filled = [(name, value) for name, value in collected if value is not None]
    if filled:
        parts.append("Information collected so far:")
        for name, value in filled:
            parts.append(f"  {name}: {value}")
    else:
        parts.append("Nothing has been collected yet.")

    next_slot = get_next_empty_slot(slots)
    if next_slot is not None:
        defn = next(d for d in SLOT_DEFINITIONS if d.name == next_slot)
        parts.append(f"Next, ask for the {defn.display_name}. {defn.prompt_hint}.")
    else:
        parts.append("All details are collected. Confirm them and offer checkout.")
    return "\n".join(parts)


def build_checkout_format(marker: str) -> str:
    """The reply format the model must use once every slot is filled."""
    return "\n".join([
        marker,
        "- Activity: {activity_name}",
        "- Date: {date}",
        "- Time: {time}",
        "- Guests: {number}",
        "- Email: {customer_email}",
    ])
