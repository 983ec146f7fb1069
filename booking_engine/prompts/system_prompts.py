"""
System prompt composition for the booking chat agent.

The prompt is a pure function of the agent settings, the activity
catalog and the current slots: identical inputs produce a byte-identical
string, so prompts can be asserted on without calling a model.
Venue-level values are injected from configuration, not hardcoded.
"""

from typing import Iterable, Optional

from booking_engine.config import BusinessConfig, settings
from booking_engine.prompts.prompt_templates import (
    build_activity_catalog,
    build_checkout_format,
    build_collected_slots_block,
    build_faq_block,
)
from booking_engine.schemas.agent_schema import AgentConfig
from booking_engine.schemas.booking_schema import Activity, BookingSlots

CHECKOUT_MARKER = "[CHECKOUT_READY]"

BOOKING_SEQUENCE = """YOUR TASKS (in this order):
1. Help the customer choose an activity
2. Agree on a date
3. Agree on a time
4. Collect the number of participants
5. Gather contact information (name and email)"""

CHAT_STYLE_RULES = """CHAT RULES:
- Keep replies short: two or three sentences.
- Ask ONE question at a time.
- Never invent activities, prices, or availability that are not listed above.
- If the customer gives several details at once, acknowledge them all and ask only for what is missing."""


def has_checkout_marker(reply: str) -> bool:
    """True when a reply signals that every slot is filled."""
    return CHECKOUT_MARKER in reply


def compose_system_prompt(
    agent_config: AgentConfig,
    activities: Iterable[Activity],
    slots: BookingSlots,
    instructions: Optional[str] = None,
    business: Optional[BusinessConfig] = None,
) -> str:
    """Build the system prompt for the next model call.

    ``business`` names the venue; it defaults to the process-wide settings.
    """
    business = business or settings.business
    catalog = list(activities)
    business_hours = agent_config.business_hours or business.business_hours

    rules = [f"- Be {agent_config.personality} and helpful"]
    if agent_config.show_prices:
        rules.append("- Always mention prices when discussing activities")
    else:
        rules.append("- Do not quote exact prices; mention pricing is shown at checkout")
    if agent_config.auto_suggest:
        rules.append("- Proactively suggest options and next steps")
    if agent_config.escalate_to_human:
        rules.append("- Offer to connect with a human if the customer seems stuck or frustrated")
    if agent_config.collect_feedback:
        rules.append("- At the end of successful bookings, ask for feedback")

    lines = [
        f"You are a {agent_config.personality} booking assistant for {business.name}, "
        f"an {business.venue_type}.",
        "",
        f'GREETING: "{agent_config.greeting}"',
        "",
        "AVAILABLE ACTIVITIES:",
        build_activity_catalog(catalog, show_prices=agent_config.show_prices),
        "",
        f"BUSINESS HOURS: {business_hours}",
        "",
        BOOKING_SEQUENCE,
        "",
        "RULES:",
        *rules,
        "",
        CHAT_STYLE_RULES,
    ]

    faqs = build_faq_block(agent_config.custom_faqs)
    if faqs:
        lines += ["", "FREQUENTLY ASKED QUESTIONS:", faqs]

    if instructions:
        lines += ["", "OPERATOR INSTRUCTIONS:", instructions.strip()]

    lines += [
        "",
        "CURRENT BOOKING:",
        build_collected_slots_block(slots, catalog),
        "",
        f"Once the activity, date, time, number of guests and email are ALL known, "
        f"reply using this exact format, starting with the literal {CHECKOUT_MARKER} token:",
        build_checkout_format(CHECKOUT_MARKER),
        "",
        f"Never write {CHECKOUT_MARKER} while any detail is still missing.",
    ]
    return "\n".join(lines)
