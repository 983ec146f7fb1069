"""Booking slot and activity catalog data models."""

from datetime import date as Date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Activity(BaseModel):
    """A bookable activity offered by the venue."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: float
    duration: Optional[int] = None  # minutes


class BookingSlots(BaseModel):
    """
    Sparse record of booking intent collected during a conversation.

    The same shape doubles as an extraction patch: fields left as None
    mean "nothing found" and never clear a value when merged.
    """

    model_config = ConfigDict(frozen=True)

    activity_id: Optional[str] = None
    date: Optional[Date] = None
    time: Optional[str] = None
    party_size: Optional[int] = Field(default=None, gt=0)
    customer_email: Optional[str] = None

    def filled(self) -> dict:
        """Return only the fields that carry a value."""
        return self.model_dump(exclude_none=True)

    def is_empty(self) -> bool:
        return not self.filled()
