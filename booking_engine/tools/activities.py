"""
Demo activity catalog.

In production the catalog comes from the venue's hosted data store;
this mock is used by the console demo and tests.
"""

import logging
from typing import Iterable, Optional

from booking_engine.schemas.booking_schema import Activity

logger = logging.getLogger(__name__)

ACTIVITY_CATALOG: list[Activity] = [
    Activity(id="act_mystery_mansion", name="Mystery Mansion", price=35.0, duration=60),
    Activity(id="act_pirate_cove", name="Pirate's Cove", price=30.0, duration=60),
    Activity(id="act_space_station", name="Space Station Omega", price=40.0, duration=75),
    Activity(id="act_haunted_asylum", name="Haunted Asylum", price=38.0, duration=60),
    Activity(id="act_axe_throwing", name="Axe Throwing", price=25.0, duration=45),
]


def get_all_activities() -> list[Activity]:
    """Return the full demo catalog."""
    return list(ACTIVITY_CATALOG)


def find_activity(
    activity_id: Optional[str], activities: Optional[Iterable[Activity]] = None
) -> Optional[Activity]:
    """Look up an activity by ID in the given catalog (demo catalog by default)."""
    if activity_id is None:
        return None
    for activity in activities if activities is not None else ACTIVITY_CATALOG:
        if activity.id == activity_id:
            return activity
    logger.debug("Activity '%s' not found in catalog", activity_id)
    return None


def format_price(price: float) -> str:
    """Render a price the way the chat shows it ($35 or $35.50)."""
    if float(price).is_integer():
        return f"${int(price)}"
    return f"${price:.2f}"
