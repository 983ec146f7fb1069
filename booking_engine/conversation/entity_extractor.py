"""
Rule-based entity extraction for free-text booking messages.

Each field (activity, date, time, party size, email) has its own set of
patterns, applied independently, so one message can fill several slots.
When a field has more than one candidate, the earliest one in reading
order wins. Activity names can instead be resolved in catalog order via
the ``activity_tie_break`` setting.

Extraction never raises: text that matches nothing yields an empty
BookingSlots patch.

Usage:
    extractor = EntityExtractor(activities=get_all_activities())
    patch = extractor.extract("4 people for Mystery Mansion tomorrow at 2:30 PM")
    patch.party_size   # 4
"""

import logging
import re
from datetime import date, timedelta
from typing import Iterable, Optional

from booking_engine.config import settings
from booking_engine.conversation.slot_manager import SlotName
from booking_engine.schemas.booking_schema import Activity, BookingSlots

logger = logging.getLogger(__name__)

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}

# Times of day that stand for a default slot, as minutes past midnight
TIME_OF_DAY_DEFAULTS = {
    "noon": 12 * 60,
    "midday": 12 * 60,
    "morning": 10 * 60,
    "afternoon": 14 * 60,
    "evening": 18 * 60,
}

_MONTH_RE = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_PEOPLE_RE = r"(?:people|persons?|guests?|players?|participants?|adults?|pax|of us)"
_NUMBER_WORD_RE = "(" + "|".join(NUMBER_WORDS) + ")"

_RELATIVE_DATE = re.compile(r"\b(today|tonight|tomorrow|next week)\b", re.IGNORECASE)
_WEEKDAY = re.compile(r"\b(" + "|".join(WEEKDAYS) + r")\b", re.IGNORECASE)
_ISO_DATE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
_SLASH_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b")
_DAY_MONTH = re.compile(
    r"\b(\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?" + _MONTH_RE + r"\b", re.IGNORECASE
)
_MONTH_DAY = re.compile(
    r"\b" + _MONTH_RE + r"\s+(\d{1,2})(?:st|nd|rd|th)?\b", re.IGNORECASE
)

_MERIDIEM_TIME = re.compile(
    r"\b(\d{1,2})(?::([0-5]\d))?\s*([ap])\.?\s?m\b\.?", re.IGNORECASE
)
_CLOCK_TIME = re.compile(r"\b(\d{1,2}):([0-5]\d)\b(?!\s*[ap]\.?\s?m\b)", re.IGNORECASE)
_AT_HOUR = re.compile(
    r"\bat\s+(\d{1,2})\b(?!\s*(?:[:/]|[ap]\.?\s?m\b|" + _PEOPLE_RE + r"))",
    re.IGNORECASE,
)
_TIME_OF_DAY = re.compile(r"\b(" + "|".join(TIME_OF_DAY_DEFAULTS) + r")\b", re.IGNORECASE)

_COUNT_WITH_NOUN = re.compile(r"\b(\d{1,3})\s*" + _PEOPLE_RE + r"\b", re.IGNORECASE)
_WORD_WITH_NOUN = re.compile(r"\b" + _NUMBER_WORD_RE + r"\s+" + _PEOPLE_RE + r"\b", re.IGNORECASE)
_DURATION_RE = r"(?:hours?|hrs?|minutes?|mins?|days?|nights?|weeks?)"
_FOR_COUNT = re.compile(
    r"\bfor\s+(\d{1,3})\b(?!\s*(?:[:/]|[ap]\.?\s?m\b|" + _DURATION_RE + r"\b))", re.IGNORECASE
)
_SOLO = re.compile(r"\b(just me|myself|solo|alone)\b", re.IGNORECASE)
_PAIR = re.compile(r"\b(couple|pair|two of us)\b", re.IGNORECASE)
_BARE_COUNT = re.compile(r"^\s*(\d{1,3})\s*[.!]?\s*$")
_BARE_WORD = re.compile(r"^\s*" + _NUMBER_WORD_RE + r"\s*[.!]?\s*$", re.IGNORECASE)

_EMAIL = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}")


def format_slot_time(minutes: int) -> str:
    """Render minutes past midnight as a grid label, e.g. 870 -> '2:30 PM'."""
    hour, minute = divmod(minutes, 60)
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def parse_slot_time(label: str) -> Optional[int]:
    """Parse a grid label such as '2:30 PM' or '2pm' into minutes past midnight."""
    match = _MERIDIEM_TIME.fullmatch(label.strip())
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    if not 1 <= hour <= 12:
        return None
    return _to_24h(hour, match.group(3).lower()) * 60 + minute


def _to_24h(hour: int, meridiem: str) -> int:
    if meridiem == "p" and hour < 12:
        return hour + 12
    if meridiem == "a" and hour == 12:
        return 0
    return hour


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _month_number(token: str) -> int:
    return MONTHS[token[:3].lower()]


class EntityExtractor:
    """Stateless extractor bound to a catalog and a time-slot grid."""

    def __init__(
        self,
        activities: Iterable[Activity] = (),
        time_slots: Optional[Iterable[str]] = None,
        activity_tie_break: Optional[str] = None,
    ) -> None:
        self.activities: list[Activity] = list(activities)
        self.activity_tie_break = activity_tie_break or settings.conversation.activity_tie_break
        grid = time_slots if time_slots is not None else settings.conversation.time_slots
        self._grid: dict[int, str] = {}
        for label in grid:
            minutes = parse_slot_time(label)
            if minutes is None:
                logger.warning("Ignoring unparseable time slot '%s'", label)
                continue
            self._grid[minutes] = format_slot_time(minutes)

    @property
    def time_slots(self) -> list[str]:
        return [self._grid[m] for m in sorted(self._grid)]

    def extract(
        self,
        utterance: str,
        expected_slot: Optional[SlotName] = None,
        today: Optional[date] = None,
    ) -> BookingSlots:
        """
        Parse one utterance into a BookingSlots patch.

        Args:
            utterance: Raw customer message.
            expected_slot: The slot the conversation is currently asking
                for. A bare number counts as a party size only when this
                is SlotName.PARTY_SIZE.
            today: Reference date for relative terms (defaults to today).
        """
        text = utterance or ""
        today = today or date.today()
        dates = self._date_candidates(text, today)
        patch = BookingSlots(
            activity_id=self._extract_activity(text),
            date=min(dates, key=lambda c: c[0][0])[1] if dates else None,
            time=self._extract_time(text),
            party_size=self._extract_party_size(text, expected_slot, [span for span, _ in dates]),
            customer_email=self._extract_email(text),
        )
        if not patch.is_empty():
            logger.debug("Extracted entities: %s", sorted(patch.filled()))
        return patch

    # ------------------------------------------------------------------ #
    # Per-field rules
    # ------------------------------------------------------------------ #

    def _extract_activity(self, text: str) -> Optional[str]:
        lower = text.lower()
        hits: list[tuple[int, int, Activity]] = []
        for order, activity in enumerate(self.activities):
            name = activity.name.lower().strip()
            if not name:
                continue
            position = lower.find(name)
            if position >= 0:
                # Longer names win at the same position ("Space Station Omega" over "Space Station")
                hits.append((position, -len(name), activity))
                if self.activity_tie_break == "catalog_order":
                    return activity.id
        if not hits:
            return None
        hits.sort(key=lambda hit: (hit[0], hit[1]))
        return hits[0][2].id

    def _date_candidates(self, text: str, today: date) -> list[tuple[tuple[int, int], date]]:
        """Every date found in the text, with the span it was read from."""
        candidates: list[tuple[tuple[int, int], date]] = []

        for match in _RELATIVE_DATE.finditer(text):
            word = match.group(1).lower()
            offset = {"today": 0, "tonight": 0, "tomorrow": 1, "next week": 7}[word]
            candidates.append((match.span(), today + timedelta(days=offset)))

        for match in _WEEKDAY.finditer(text):
            target = WEEKDAYS.index(match.group(1).lower())
            days_ahead = (target - today.weekday()) % 7 or 7
            candidates.append((match.span(), today + timedelta(days=days_ahead)))

        for match in _ISO_DATE.finditer(text):
            found = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            if found:
                candidates.append((match.span(), found))

        for match in _SLASH_DATE.finditer(text):
            month, day = int(match.group(1)), int(match.group(2))
            found = self._resolve_year(month, day, match.group(3), today)
            if found:
                candidates.append((match.span(), found))

        for match in _DAY_MONTH.finditer(text):
            found = self._resolve_year(_month_number(match.group(2)), int(match.group(1)), None, today)
            if found:
                candidates.append((match.span(), found))

        for match in _MONTH_DAY.finditer(text):
            found = self._resolve_year(_month_number(match.group(1)), int(match.group(2)), None, today)
            if found:
                candidates.append((match.span(), found))

        return candidates

    @staticmethod
    def _resolve_year(month: int, day: int, year_token: Optional[str], today: date) -> Optional[date]:
        """Dates without a year mean the next such date on or after today."""
        if year_token:
            year = int(year_token)
            if year < 100:
                year += 2000
            return _safe_date(year, month, day)
        found = _safe_date(today.year, month, day)
        if found and found < today:
            found = _safe_date(today.year + 1, month, day)
        return found

    def _extract_time(self, text: str) -> Optional[str]:
        candidates: list[tuple[int, list[int]]] = []

        for match in _MERIDIEM_TIME.finditer(text):
            hour = int(match.group(1))
            if 1 <= hour <= 12:
                minute = int(match.group(2) or 0)
                minutes = _to_24h(hour, match.group(3).lower()) * 60 + minute
                candidates.append((match.start(), [minutes]))

        for match in _CLOCK_TIME.finditer(text):
            hour, minute = int(match.group(1)), int(match.group(2))
            if hour <= 23:
                candidates.append((match.start(), [h * 60 + minute for h in self._hour_readings(hour)]))

        for match in _AT_HOUR.finditer(text):
            hour = int(match.group(1))
            if hour <= 23:
                candidates.append((match.start(), [h * 60 for h in self._hour_readings(hour)]))

        for match in _TIME_OF_DAY.finditer(text):
            candidates.append((match.start(), [TIME_OF_DAY_DEFAULTS[match.group(1).lower()]]))

        for _, readings in sorted(candidates, key=lambda c: c[0]):
            for minutes in readings:
                if minutes in self._grid:
                    return self._grid[minutes]
        return None

    @staticmethod
    def _hour_readings(hour: int) -> list[int]:
        """Possible 24h hours for a clock hour written without AM/PM, AM first."""
        if 1 <= hour <= 11:
            return [hour, hour + 12]
        return [hour]

    def _extract_party_size(
        self,
        text: str,
        expected_slot: Optional[SlotName],
        date_spans: Iterable[tuple[int, int]] = (),
    ) -> Optional[int]:
        date_spans = list(date_spans)

        def inside_date(span: tuple[int, int]) -> bool:
            return any(span[0] < end and start < span[1] for start, end in date_spans)

        candidates: list[tuple[int, int]] = []

        # A number that is also the day of a date ("for 12 March") is not a head count
        for match in _COUNT_WITH_NOUN.finditer(text):
            if not inside_date(match.span(1)):
                candidates.append((match.start(), int(match.group(1))))
        for match in _WORD_WITH_NOUN.finditer(text):
            if not inside_date(match.span(1)):
                candidates.append((match.start(), NUMBER_WORDS[match.group(1).lower()]))
        for match in _FOR_COUNT.finditer(text):
            if not inside_date(match.span(1)):
                candidates.append((match.start(), int(match.group(1))))
        for match in _SOLO.finditer(text):
            candidates.append((match.start(), 1))
        for match in _PAIR.finditer(text):
            candidates.append((match.start(), 2))

        if not candidates and expected_slot == SlotName.PARTY_SIZE:
            bare = _BARE_COUNT.match(text)
            if bare:
                candidates.append((0, int(bare.group(1))))
            else:
                word = _BARE_WORD.match(text)
                if word:
                    candidates.append((0, NUMBER_WORDS[word.group(1).lower()]))

        for _, size in sorted(candidates, key=lambda c: c[0]):
            if size > 0:
                return size
        return None

    @staticmethod
    def _extract_email(text: str) -> Optional[str]:
        match = _EMAIL.search(text)
        return match.group(0) if match else None


def extract_entities(
    utterance: str,
    activities: Iterable[Activity] = (),
    expected_slot: Optional[SlotName] = None,
    today: Optional[date] = None,
) -> BookingSlots:
    """One-off extraction with the configured time grid and tie-break policy."""
    return EntityExtractor(activities).extract(utterance, expected_slot=expected_slot, today=today)
