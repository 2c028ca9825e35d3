"""
Four Pillars (四柱) resolution.

Converts a UTC+8 birth instant and a branch-hour index into the
Year, Month, Day and Hour pillars:

- Year: changes at Li Chun, not on January 1st
- Month: the Jie interval containing the instant (Five Tigers rule for the stem)
- Day: continuous Julian Day Number count, anchored on 1949-10-01 = 甲子
- Hour: branch = hour index, stem from the Day stem (Five Rats rule)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from functools import lru_cache
from typing import Optional

from fourpillars.astro_calendar import (
    julian_day_number,
    to_beijing_time,
    validate_hour_index,
)
from fourpillars.sexagenary import (
    CYCLE_LENGTH,
    HeavenlyStem,
    Pillar,
    PillarRole,
    make_pillar,
    pillar_from_index,
)
from fourpillars.solar_terms import SolarTerm, SolarTermCalculator, default_calculator

logger = logging.getLogger(__name__)

# 1984 (and 4 CE) were Jia Zi years.
REFERENCE_YEAR = 1984

# 1949-10-01 was a Jia Zi day.
DAY_ANCHOR_DATE = date(1949, 10, 1)
DAY_ANCHOR_JDN = 2433191
DAY_ANCHOR_INDEX = 0

# Five Tigers Escape (五虎遁): stem of the Tiger month, keyed by year stem % 5
#   Jia/Ji → Bing, Yi/Geng → Wu, Bing/Xin → Geng, Ding/Ren → Ren, Wu/Gui → Jia
TIGER_MONTH_STEMS = (2, 4, 6, 8, 0)

# Five Rats Escape (五鼠遁): stem of the Zi hour, keyed by day stem % 5
#   Jia/Ji → Jia, Yi/Geng → Bing, Bing/Xin → Wu, Ding/Ren → Geng, Wu/Gui → Ren
RAT_HOUR_STEMS = (0, 2, 4, 6, 8)

TIGER_BRANCH = 2


class ZiHourPolicy(Enum):
    """
    Which civil day owns 23:00-23:59, the first half of the Zi hour.

    SAME_DAY keeps the civil date's Day pillar and derives the Hour stem
    from it. NEXT_DAY moves both to the following day, so a 23:30 birth
    shares its Day pillar with a 00:30 birth a few minutes later.
    """
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"


@dataclass(frozen=True)
class FourPillars:
    year: Pillar
    month: Pillar
    day: Pillar
    hour: Pillar
    birth_instant: datetime
    hour_index: int
    fate_year: int
    lichun: datetime
    month_term: SolarTerm
    zi_policy: ZiHourPolicy = ZiHourPolicy.SAME_DAY

    @property
    def day_master(self) -> HeavenlyStem:
        return self.day.stem

    @property
    def pillars(self) -> tuple[Pillar, Pillar, Pillar, Pillar]:
        return (self.year, self.month, self.day, self.hour)

    @property
    def zodiac_animal(self) -> str:
        return self.year.branch.animal

    @property
    def is_before_lichun(self) -> bool:
        return self.fate_year < self.birth_instant.year

    def __str__(self):
        return " ".join(p.chinese for p in self.pillars)

    def to_dict(self) -> dict:
        return {
            "pillars": {p.role.value: p.to_dict() for p in self.pillars},
            "day_master": self.day_master.to_dict(),
            "zodiac_animal": self.zodiac_animal,
            "debug": {
                "birth_instant": self.birth_instant.isoformat(),
                "civil_year": self.birth_instant.year,
                "fate_year": self.fate_year,
                "lichun": self.lichun.isoformat(),
                "is_before_lichun": self.is_before_lichun,
                "month_term": self.month_term.to_dict(),
                "hour_index": self.hour_index,
                "zi_policy": self.zi_policy.value,
                "timezone": "UTC+08:00",
            },
        }


class FourPillarResolver:
    """Resolves pillars against an injected SolarTermCalculator."""

    def __init__(self, calculator: SolarTermCalculator,
                 zi_policy: ZiHourPolicy = ZiHourPolicy.SAME_DAY):
        self.calculator = calculator
        self.zi_policy = zi_policy

    # --- Year ------------------------------------------------------------

    def fate_year(self, instant: datetime) -> int:
        """
        The BaZi year of an instant.

        Births before that civil year's Li Chun belong to the previous year.
        """
        instant = to_beijing_time(instant)
        if instant < self.calculator.lichun(instant.year):
            return instant.year - 1
        return instant.year

    def year_pillar(self, fate_year: int, role: PillarRole = PillarRole.YEAR) -> Pillar:
        return pillar_from_index((fate_year - REFERENCE_YEAR) % CYCLE_LENGTH, role)

    # --- Month -----------------------------------------------------------

    def month_pillar(self, year_stem_index: int, month_branch_index: int) -> Pillar:
        """
        Month pillar by the Five Tigers Escape rule.

        The year stem fixes the stem of the Tiger (寅) month; each later
        month advances the stem by one.
        """
        start_stem = TIGER_MONTH_STEMS[year_stem_index % 5]
        months_from_tiger = (month_branch_index - TIGER_BRANCH) % 12
        stem_index = (start_stem + months_from_tiger) % 10
        return make_pillar(stem_index, month_branch_index, PillarRole.MONTH)

    # --- Day -------------------------------------------------------------

    def day_pillar(self, civil_date: date) -> Pillar:
        """Day pillar from the Julian Day Number; purely calendrical."""
        days = julian_day_number(civil_date) - DAY_ANCHOR_JDN
        return pillar_from_index((DAY_ANCHOR_INDEX + days) % CYCLE_LENGTH, PillarRole.DAY)

    def day_for_hour(self, instant: datetime, hour_index: int,
                     zi_policy: Optional[ZiHourPolicy] = None) -> date:
        """Civil date whose Day pillar applies, after the Zi hour policy."""
        policy = zi_policy or self.zi_policy
        civil_date = instant.date()
        if policy is ZiHourPolicy.NEXT_DAY and hour_index == 0 and instant.hour == 23:
            civil_date += timedelta(days=1)
        return civil_date

    # --- Hour ------------------------------------------------------------

    def hour_pillar(self, day_stem_index: int, hour_index: int) -> Pillar:
        """Hour pillar by the Five Rats Escape rule."""
        validate_hour_index(hour_index)
        start_stem = RAT_HOUR_STEMS[day_stem_index % 5]
        stem_index = (start_stem + hour_index) % 10
        return make_pillar(stem_index, hour_index, PillarRole.HOUR)

    # --- Full chart ------------------------------------------------------

    def resolve(self, birth_instant: datetime, hour_index: int,
                zi_policy: Optional[ZiHourPolicy] = None) -> FourPillars:
        """
        Resolve all four pillars for a birth.

        Args:
            birth_instant: civil date-time; naive values are read as UTC+8
            hour_index: branch hour 0-11 (0 = Zi, 23:00-00:59)
            zi_policy: override the resolver's Zi hour policy

        Raises:
            InvalidHourIndexError: hour_index outside 0-11
            UnsupportedYearError: birth year outside the supported range
        """
        validate_hour_index(hour_index)
        policy = zi_policy or self.zi_policy
        instant = to_beijing_time(birth_instant)

        fate_year = self.fate_year(instant)
        yp = self.year_pillar(fate_year)

        month_term = self.calculator.previous_jie(instant)
        mp = self.month_pillar(yp.stem.index, month_term.month_branch_index)

        dp = self.day_pillar(self.day_for_hour(instant, hour_index, policy))
        hp = self.hour_pillar(dp.stem.index, hour_index)

        chart = FourPillars(
            year=yp, month=mp, day=dp, hour=hp,
            birth_instant=instant,
            hour_index=hour_index,
            fate_year=fate_year,
            lichun=self.calculator.lichun(instant.year),
            month_term=month_term,
            zi_policy=policy,
        )
        logger.debug("Resolved %s for %s (hour %d)", chart, instant.isoformat(), hour_index)
        return chart

    def calendar_pillars(self, instant: datetime) -> dict[str, Pillar]:
        """Year, month and day pillars in force at any instant (daily almanac use)."""
        instant = to_beijing_time(instant)
        yp = self.year_pillar(self.fate_year(instant))
        mp = self.month_pillar(yp.stem.index,
                               self.calculator.previous_jie(instant).month_branch_index)
        return {"year": yp, "month": mp, "day": self.day_pillar(instant.date())}


@lru_cache(maxsize=1)
def default_resolver() -> FourPillarResolver:
    return FourPillarResolver(default_calculator())


def calendar_pillars(instant: datetime) -> dict[str, Pillar]:
    return default_resolver().calendar_pillars(instant)
