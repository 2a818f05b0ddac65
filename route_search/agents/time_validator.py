"""Leg connection checks and day-by-day schedule construction.

The predicates here only filter: a chain or a schedule that fails is dropped
by the caller, never patched up.
"""
from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple

from route_search.schemas import (
    AccommodationOption,
    AttractionOption,
    DaySchedule,
    TimeSlot,
    TransportOption,
)

DEFAULT_MIN_TRANSFER_MINUTES = 30
MAX_ACTIVE_HOURS_PER_DAY = 16.0

_DAY_START = time(9, 0)
_DINNER_START = time(18, 0)
_DINNER_MINUTES = 90
_CHECK_IN = time(20, 0)
_LOCAL_TRANSFER_MINUTES = 30

_MODE_LABELS = {
    "flight": "Flight",
    "train": "Train",
    "bus": "Bus",
    "car": "Drive",
    "subway": "Subway",
    "walk": "Walk",
}


def legs_connect(
    leg_a: TransportOption,
    leg_b: TransportOption,
    min_transfer_minutes: int = DEFAULT_MIN_TRANSFER_MINUTES,
) -> bool:
    """True when ``leg_b`` departs at least ``min_transfer_minutes`` after ``leg_a`` arrives."""
    return leg_a.arrival_time + timedelta(minutes=min_transfer_minutes) <= leg_b.departure_time


def chain_valid(
    legs: Sequence[TransportOption],
    min_transfer_minutes: int = DEFAULT_MIN_TRANSFER_MINUTES,
) -> bool:
    return all(legs_connect(a, b, min_transfer_minutes) for a, b in zip(legs[:-1], legs[1:]))


def waiting_minutes(leg_a: TransportOption, leg_b: TransportOption) -> float:
    return max(0.0, (leg_b.departure_time - leg_a.arrival_time).total_seconds() / 60)


def slots_overlap(slot_a: TimeSlot, slot_b: TimeSlot) -> bool:
    """Half-open ``[start, end)`` overlap; touching slots do not overlap."""
    return slot_a.start < slot_b.end and slot_b.start < slot_a.end


def _at(day: date, clock: time) -> datetime:
    return datetime.combine(day, clock)


def _leg_slot(leg: TransportOption, label: str) -> TimeSlot:
    mode = _MODE_LABELS.get(leg.mode, leg.mode.title())
    return TimeSlot(
        start=leg.departure_time,
        end=leg.arrival_time,
        activity=f"{label} ({mode})",
        location=f"{leg.origin} -> {leg.destination}",
    )


class ScheduleGenerator:
    """Lay out an itinerary as one ``DaySchedule`` per calendar day.

    Day 0 opens with the outbound leg, every night of the stay gets
    sightseeing, dinner and a check-in marker, and the final day closes with
    the return leg. Visits that would run into dinner resume after it.
    """

    def build(
        self,
        start_date: date,
        nights: int,
        outbound: Optional[TransportOption],
        return_leg: Optional[TransportOption],
        attractions: Sequence[AttractionOption],
        accommodation: Optional[AccommodationOption] = None,
    ) -> List[DaySchedule]:
        nights = max(1, nights)
        per_day = math.ceil(len(attractions) / nights) if attractions else 0
        lodging_name = accommodation.name if accommodation else "accommodation"
        lodging_location = accommodation.location if accommodation else ""

        schedules: List[DaySchedule] = []
        for day in range(nights + 1):
            current = start_date + timedelta(days=day)
            slots: List[TimeSlot] = []
            cursor = _at(current, _DAY_START)

            if day == 0 and outbound is not None:
                slots.append(_leg_slot(outbound, "Outbound"))
                cursor = max(cursor, outbound.arrival_time)

            if day < nights:
                dinner_start = _at(current, _DINNER_START)
                dinner_end = dinner_start + timedelta(minutes=_DINNER_MINUTES)
                for attraction in attractions[day * per_day : (day + 1) * per_day]:
                    visit_start = cursor + timedelta(minutes=_LOCAL_TRANSFER_MINUTES)
                    visit_end = visit_start + timedelta(minutes=attraction.visit_duration_minutes)
                    if visit_start < dinner_end and dinner_start < visit_end:
                        visit_start = dinner_end + timedelta(minutes=_LOCAL_TRANSFER_MINUTES)
                        visit_end = visit_start + timedelta(minutes=attraction.visit_duration_minutes)
                    slots.append(
                        TimeSlot(
                            start=visit_start,
                            end=visit_end,
                            activity=attraction.name,
                            location=attraction.location,
                        )
                    )
                    cursor = visit_end

                slots.append(
                    TimeSlot(start=dinner_start, end=dinner_end, activity="Dinner", location=lodging_location)
                )
                check_in = _at(current, _CHECK_IN)
                slots.append(
                    TimeSlot(
                        start=check_in,
                        end=check_in,
                        activity=f"Check-in: {lodging_name}",
                        location=lodging_location,
                    )
                )

            if day == nights and return_leg is not None:
                slots.append(_leg_slot(return_leg, "Return"))

            slots.sort(key=lambda slot: slot.start)
            total_hours = sum((slot.end - slot.start).total_seconds() for slot in slots) / 3600
            schedules.append(
                DaySchedule(day=day + 1, day_date=current, slots=slots, total_hours=round(total_hours, 2))
            )
        return schedules

    def validate(self, schedule: Sequence[DaySchedule]) -> Tuple[bool, List[str]]:
        """Check day lengths and slot overlaps across the whole schedule.

        A late visit stays in the day it started on even when it ends after
        midnight, so slots are compared across days too.
        """
        errors: List[str] = []
        for day in schedule:
            if day.total_hours > MAX_ACTIVE_HOURS_PER_DAY:
                errors.append(f"Day {day.day}: {day.total_hours:.1f}h of activities is too long")
        slots = [(day.day, slot) for day in schedule for slot in day.slots]
        for i, (first_day, first) in enumerate(slots):
            for second_day, second in slots[i + 1 :]:
                if not slots_overlap(first, second):
                    continue
                if first_day == second_day:
                    errors.append(f"Day {first_day}: {first.activity} overlaps {second.activity}")
                else:
                    errors.append(
                        f"Day {first_day}: {first.activity} overlaps {second.activity} on day {second_day}"
                    )
        return not errors, errors


def summarize_schedule(schedule: Sequence[DaySchedule]) -> str:
    lines: List[str] = []
    for day in schedule:
        lines.append(f"Day {day.day} ({day.day_date.isoformat()})")
        for slot in day.slots:
            lines.append(f"  {slot.start:%H:%M} - {slot.activity} @ {slot.location}")
    return "\n".join(lines)
