"""
Assigns a section (NRC) to each course of an already-computed projection,
avoiding timetable overlaps between the chosen sections.

The projection itself is never re-ranked here: courses are visited in the
order the engine returned them, and a course without a clash-free section
simply keeps nrc=None.
"""

import re
import threading
from dataclasses import dataclass, field

from projection_models import ProjectionResult

TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')


@dataclass(frozen=True)
class TimeSlot:
    day: str
    start: str
    end: str
    room: str | None = None


@dataclass
class OfferParallel:
    period: str
    nrc: str
    course: str
    section: str = ""
    seats: int = 0
    slots: list[TimeSlot] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "nrc": self.nrc,
            "course": self.course,
            "section": self.section,
            "seats": self.seats,
            "slots": [
                {"day": s.day, "start": s.start, "end": s.end, "room": s.room}
                for s in self.slots
            ],
        }


def _minutes(hhmm: str) -> int | None:
    m = TIME_RE.match(str(hhmm or "").strip())
    if not m:
        return None
    return int(m.group(1)) * 60 + int(m.group(2))


def slots_overlap(a: TimeSlot, b: TimeSlot) -> bool:
    """
    Same day and intersecting [start, end) ranges.
    Slots with unreadable times never count as overlapping.
    """
    if str(a.day).strip().upper() != str(b.day).strip().upper():
        return False
    a_start, a_end = _minutes(a.start), _minutes(a.end)
    b_start, b_end = _minutes(b.start), _minutes(b.end)
    if None in (a_start, a_end, b_start, b_end):
        return False
    return a_start < b_end and b_start < a_end


def any_overlap(slots_a: list[TimeSlot], slots_b: list[TimeSlot]) -> bool:
    return any(slots_overlap(a, b) for a in slots_a for b in slots_b)


class OfferCatalog:
    """Thread-safe in-memory section catalog keyed by NRC."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_nrc: dict[str, OfferParallel] = {}

    def upsert_many(self, offers: list[OfferParallel]) -> int:
        with self._lock:
            for offer in offers:
                self._by_nrc[offer.nrc] = offer
        return len(offers)

    def list_by_course_and_period(self, course: str, period: str) -> list[OfferParallel]:
        with self._lock:
            return [
                o for o in self._by_nrc.values()
                if o.course == course and o.period == period
            ]

    def clear(self) -> None:
        with self._lock:
            self._by_nrc.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_nrc)


def resolve_offers(result: ProjectionResult, catalog: OfferCatalog, period: str) -> ProjectionResult:
    """
    Pick one section per selected course, most seats first, skipping any
    section that clashes with one already picked. Sets course.nrc in place.
    """
    picked_slots: list[list[TimeSlot]] = []
    for course in result.selection:
        parallels = sorted(
            catalog.list_by_course_and_period(course.code, period),
            key=lambda p: -p.seats,
        )
        pick = next(
            (p for p in parallels if not any(any_overlap(s, p.slots) for s in picked_slots)),
            None,
        )
        if pick is not None:
            picked_slots.append(pick.slots)
            course.nrc = pick.nrc

    return ProjectionResult(
        selection=result.selection,
        total_credits=result.total_credits,
        rules=result.rules.with_offer(period),
    )
