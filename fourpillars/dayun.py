"""
Luck Pillars (大运 Da Yun) computation.

Direction of count depends on gender + year stem polarity:
- Yang stem year + Male OR Yin stem year + Female → count FORWARD
- Yang stem year + Female OR Yin stem year + Male → count BACKWARD

Starting age is the time from birth to the next (forward) or previous
(backward) Jie term, converted at 3 days = 1 year, 1 day = 4 months.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from fourpillars.astro_calendar import to_beijing_time
from fourpillars.pillars import FourPillars
from fourpillars.sexagenary import (
    HeavenlyStem,
    Pillar,
    PillarRole,
    Polarity,
    TenGod,
    ten_god,
)
from fourpillars.solar_terms import SolarTerm, SolarTermCalculator

logger = logging.getLogger(__name__)

DAYS_PER_YEAR_OF_LUCK = 3
MONTHS_PER_DAY_OF_LUCK = 4
YEARS_PER_STEP = 10
DEFAULT_STEPS = 10


class Gender(Enum):
    MALE = "male"
    FEMALE = "female"


class Direction(Enum):
    FORWARD = "forward"
    BACKWARD = "backward"

    @property
    def step(self) -> int:
        return 1 if self is Direction.FORWARD else -1


def luck_direction(year_stem: HeavenlyStem, gender: Union[Gender, str]) -> Direction:
    gender = Gender(gender)
    year_yang = year_stem.polarity is Polarity.YANG
    male = gender is Gender.MALE
    return Direction.FORWARD if year_yang == male else Direction.BACKWARD


def starting_age_from_days(days: float) -> tuple[int, int]:
    """
    Convert days-to-Jie into (years, months).

    Whole years are floor(days / 3); the remaining days count 4 months each,
    rounded half up, with 12 months carried into a year.
    0 days -> (0, 0), 1 day -> (0, 4), 2 days -> (0, 8), 3 days -> (1, 0).
    """
    if days < 0:
        raise ValueError(f"Day distance cannot be negative, got {days}")
    years = int(days // DAYS_PER_YEAR_OF_LUCK)
    remainder = days - years * DAYS_PER_YEAR_OF_LUCK
    months = int(remainder * MONTHS_PER_DAY_OF_LUCK + 0.5)
    if months >= 12:
        years += 1
        months -= 12
    return years, months


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass(frozen=True)
class StartingAge:
    years: int
    months: int
    days_to_jie: float
    target_term: SolarTerm
    start_date: date  # calendar date on which the first step begins

    def __str__(self):
        return f"{self.years}y {self.months}m"

    def to_dict(self) -> dict:
        return {
            "years": self.years,
            "months": self.months,
            "days_to_jie": round(self.days_to_jie, 2),
            "target_term": self.target_term.to_dict(),
            "start_date": self.start_date.isoformat(),
        }


@dataclass(frozen=True)
class DaYunStep:
    number: int  # 1..N
    pillar: Pillar
    start_age: int
    end_age: int
    ten_god: TenGod
    start_year: int
    end_year: int

    def contains_age(self, age: int) -> bool:
        return self.start_age <= age <= self.end_age

    def __str__(self):
        return f"LP{self.number}: {self.pillar.chinese} ages {self.start_age}-{self.end_age}"

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "pillar": self.pillar.to_dict(),
            "start_age": self.start_age,
            "end_age": self.end_age,
            "start_year": self.start_year,
            "end_year": self.end_year,
            "ten_god": self.ten_god.value,
            "ten_god_label": self.ten_god.label,
            "description": str(self),
        }


@dataclass(frozen=True)
class DaYunChart:
    direction: Direction
    starting_age: StartingAge
    steps: tuple[DaYunStep, ...]

    def active_step(self, age: int) -> Optional[DaYunStep]:
        """Step covering an age, or None before the first step begins."""
        for step in self.steps:
            if step.contains_age(age):
                return step
        return None

    def step_for_year(self, year: int) -> Optional[DaYunStep]:
        for step in self.steps:
            if step.start_year <= year <= step.end_year:
                return step
        return None

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "starting_age": self.starting_age.to_dict(),
            "steps": [s.to_dict() for s in self.steps],
        }


class DaYunCalculator:
    def __init__(self, calculator: SolarTermCalculator):
        self.calculator = calculator

    def starting_age(self, birth_instant: datetime, direction: Direction) -> StartingAge:
        """
        Starting age from the distance to the governing Jie term.

        Forward counts to the next Jie strictly after birth; backward counts
        back to the latest Jie at or before birth (0 days when born on it).
        """
        instant = to_beijing_time(birth_instant)
        if direction is Direction.FORWARD:
            target = self.calculator.next_jie(instant)
        else:
            target = self.calculator.previous_jie(instant)

        days = abs((target.moment - instant).total_seconds()) / 86400.0
        years, months = starting_age_from_days(days)
        start_date = _add_months(instant.date(), years * 12 + months)
        return StartingAge(years, months, days, target, start_date)

    def compute(self, four_pillars: FourPillars, gender: Union[Gender, str],
                steps: int = DEFAULT_STEPS) -> DaYunChart:
        """
        Compute the Da Yun sequence.

        Step k is the Month pillar moved k places through the 60-cycle in the
        chart's direction and covers ages [start + 10(k-1), start + 10k - 1].
        """
        if steps < 1:
            raise ValueError(f"Number of steps must be positive, got {steps}")

        direction = luck_direction(four_pillars.year.stem, gender)
        start = self.starting_age(four_pillars.birth_instant, direction)
        logger.debug("Da Yun %s from %s, starting age %s (%s)",
                     direction.value, four_pillars.month.chinese, start, start.target_term)

        day_master = four_pillars.day_master
        sequence = []
        for k in range(1, steps + 1):
            pillar = four_pillars.month.shifted(direction.step * k, PillarRole.DECADE)
            offset = YEARS_PER_STEP * (k - 1)
            sequence.append(DaYunStep(
                number=k,
                pillar=pillar,
                start_age=start.years + offset,
                end_age=start.years + offset + YEARS_PER_STEP - 1,
                ten_god=ten_god(day_master, pillar.stem),
                start_year=start.start_date.year + offset,
                end_year=start.start_date.year + offset + YEARS_PER_STEP - 1,
            ))

        return DaYunChart(direction=direction, starting_age=start, steps=tuple(sequence))
