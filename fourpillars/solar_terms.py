"""
Solar term (节气) computation.

The 24 solar terms are the moments the Sun's apparent ecliptic longitude
crosses a multiple of 15°. Numbering follows the civil year and starts at
Xiao Han (285°):

 0 Xiao Han  小寒 285°    12 Xiao Shu     小暑 105°
 1 Da Han    大寒 300°    13 Da Shu       大暑 120°
 2 Li Chun   立春 315°    14 Li Qiu       立秋 135°
 3 Yu Shui   雨水 330°    15 Chu Shu      处暑 150°
 4 Jing Zhe  惊蛰 345°    16 Bai Lu       白露 165°
 5 Chun Fen  春分   0°    17 Qiu Fen      秋分 180°
 6 Qing Ming 清明  15°    18 Han Lu       寒露 195°
 7 Gu Yu     谷雨  30°    19 Shuang Jiang 霜降 210°
 8 Li Xia    立夏  45°    20 Li Dong      立冬 225°
 9 Xiao Man  小满  60°    21 Xiao Xue     小雪 240°
10 Mang Zhong 芒种 75°    22 Da Xue       大雪 255°
11 Xia Zhi   夏至  90°    23 Dong Zhi     冬至 270°

Even indices are the 12 Jie (节) terms that open a BaZi month;
odd indices are the mid-month Qi (中气) terms.

Swiss Ephemeris supplies the solar longitude and its daily speed;
a Newton iteration inverts it to the crossing moment.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Optional

import swisseph as swe

from fourpillars.astro_calendar import BEIJING_TZ, jd_to_beijing, to_beijing_time
from fourpillars.errors import UnsupportedYearError
from fourpillars.swe_config import ephemeris_flags, initialize_swe_context

logger = logging.getLogger(__name__)

MIN_SUPPORTED_YEAR = 1900
MAX_SUPPORTED_YEAR = 2100

TERMS_PER_YEAR = 24
TROPICAL_YEAR_DAYS = 365.2422

# Convergence: 1e-6° of solar longitude is about 0.09 s of time.
_LONGITUDE_TOLERANCE = 1e-6
_MAX_ITERATIONS = 50


@dataclass(frozen=True)
class TermDefinition:
    index: int
    chinese: str
    pinyin: str
    english: str

    @property
    def longitude(self) -> int:
        return (285 + 15 * self.index) % 360

    @property
    def is_jie(self) -> bool:
        return self.index % 2 == 0


SOLAR_TERM_DEFINITIONS = (
    TermDefinition(0, "小寒", "Xiao Han", "Minor Cold"),
    TermDefinition(1, "大寒", "Da Han", "Major Cold"),
    TermDefinition(2, "立春", "Li Chun", "Start of Spring"),
    TermDefinition(3, "雨水", "Yu Shui", "Rain Water"),
    TermDefinition(4, "惊蛰", "Jing Zhe", "Awakening of Insects"),
    TermDefinition(5, "春分", "Chun Fen", "Spring Equinox"),
    TermDefinition(6, "清明", "Qing Ming", "Pure Brightness"),
    TermDefinition(7, "谷雨", "Gu Yu", "Grain Rain"),
    TermDefinition(8, "立夏", "Li Xia", "Start of Summer"),
    TermDefinition(9, "小满", "Xiao Man", "Grain Buds"),
    TermDefinition(10, "芒种", "Mang Zhong", "Grain in Ear"),
    TermDefinition(11, "夏至", "Xia Zhi", "Summer Solstice"),
    TermDefinition(12, "小暑", "Xiao Shu", "Minor Heat"),
    TermDefinition(13, "大暑", "Da Shu", "Major Heat"),
    TermDefinition(14, "立秋", "Li Qiu", "Start of Autumn"),
    TermDefinition(15, "处暑", "Chu Shu", "End of Heat"),
    TermDefinition(16, "白露", "Bai Lu", "White Dew"),
    TermDefinition(17, "秋分", "Qiu Fen", "Autumn Equinox"),
    TermDefinition(18, "寒露", "Han Lu", "Cold Dew"),
    TermDefinition(19, "霜降", "Shuang Jiang", "Frost's Descent"),
    TermDefinition(20, "立冬", "Li Dong", "Start of Winter"),
    TermDefinition(21, "小雪", "Xiao Xue", "Minor Snow"),
    TermDefinition(22, "大雪", "Da Xue", "Major Snow"),
    TermDefinition(23, "冬至", "Dong Zhi", "Winter Solstice"),
)

XIAO_HAN = 0
LI_CHUN = 2
JIE_INDICES = tuple(d.index for d in SOLAR_TERM_DEFINITIONS if d.is_jie)


@dataclass(frozen=True)
class SolarTerm:
    definition: TermDefinition
    year: int            # civil year whose table this term belongs to
    moment: datetime     # UTC+8

    @property
    def index(self) -> int:
        return self.definition.index

    @property
    def name(self) -> str:
        return self.definition.chinese

    @property
    def is_jie(self) -> bool:
        return self.definition.is_jie

    @property
    def month_branch_index(self) -> int:
        """
        Branch of the BaZi month a Jie term opens.

        Li Chun (2) opens Yin/Tiger (2), Jing Zhe (4) opens Mao (3),
        ... Da Xue (22) opens Zi (0), Xiao Han (0) opens Chou (1).
        """
        if not self.is_jie:
            raise ValueError(f"{self.definition.pinyin} is a Qi term and opens no month")
        return (self.index // 2 + 1) % 12

    def __str__(self):
        return f"{self.definition.pinyin} ({self.name}) {self.moment:%Y-%m-%d %H:%M}"

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "name": self.name,
            "pinyin": self.definition.pinyin,
            "english": self.definition.english,
            "longitude": self.definition.longitude,
            "is_jie": self.is_jie,
            "year": self.year,
            "moment": self.moment.isoformat(),
        }


# ============================================================
# ASTRONOMY
# ============================================================

def sun_longitude(jd_ut: float) -> tuple[float, float]:
    """Apparent tropical longitude of the Sun and its daily speed (degrees)."""
    result, _ = swe.calc_ut(jd_ut, swe.SUN, ephemeris_flags())
    return result[0], result[3]


def _angle_difference(target: float, longitude: float) -> float:
    """Signed shortest arc from `longitude` to `target`, in (-180, 180]."""
    diff = (target - longitude) % 360.0
    if diff > 180.0:
        diff -= 360.0
    return diff


@lru_cache(maxsize=4096)
def find_term_jd(year: int, index: int) -> float:
    """
    Julian Day (UT) at which the Sun reaches the longitude of term `index` in `year`.

    The first guess assumes evenly spaced terms from Xiao Han on Jan 6;
    Newton steps on the ephemeris longitude then converge in a few iterations.
    """
    target = float(SOLAR_TERM_DEFINITIONS[index].longitude)
    jd = swe.julday(year, 1, 6, 0.0, swe.GREG_CAL) + index * TROPICAL_YEAR_DAYS / TERMS_PER_YEAR

    for _ in range(_MAX_ITERATIONS):
        longitude, speed = sun_longitude(jd)
        diff = _angle_difference(target, longitude)
        if abs(diff) < _LONGITUDE_TOLERANCE:
            return jd
        jd += diff / speed

    raise RuntimeError(
        f"Solar longitude {target}° did not converge for year {year} (term {index})"
    )


# ============================================================
# CALCULATOR
# ============================================================

class SolarTermCalculator:
    """
    Produces solar term tables on the UTC+8 civil clock.

    Years outside [min_year, max_year] raise UnsupportedYearError.
    Neighbouring years needed for boundary lookups are computed internally
    without the range check.
    """

    def __init__(self, min_year: int = MIN_SUPPORTED_YEAR, max_year: int = MAX_SUPPORTED_YEAR):
        if min_year > max_year:
            raise ValueError(f"min_year {min_year} is after max_year {max_year}")
        self.min_year = min_year
        self.max_year = max_year
        initialize_swe_context()

    def check_year(self, year: int) -> int:
        if not self.min_year <= year <= self.max_year:
            raise UnsupportedYearError(year, self.min_year, self.max_year)
        return year

    def _term(self, year: int, index: int) -> SolarTerm:
        moment = jd_to_beijing(find_term_jd(year, index))
        return SolarTerm(SOLAR_TERM_DEFINITIONS[index], year, moment)

    def _terms(self, year: int) -> list[SolarTerm]:
        return [self._term(year, index) for index in range(TERMS_PER_YEAR)]

    def terms_for_year(self, year: int) -> list[SolarTerm]:
        """The 24 solar terms of a civil year, in chronological order."""
        self.check_year(year)
        terms = self._terms(year)
        logger.debug("Solar terms for %d: %s ... %s", year, terms[0], terms[-1])
        return terms

    def terms_with_boundary(self, year: int) -> list[SolarTerm]:
        """The 24 terms of `year` followed by Xiao Han and Da Han of the next year."""
        return self.terms_for_year(year) + [self._term(year + 1, XIAO_HAN),
                                            self._term(year + 1, XIAO_HAN + 1)]

    def term_moment(self, year: int, index: int) -> SolarTerm:
        self.check_year(year)
        if not 0 <= index < TERMS_PER_YEAR:
            raise ValueError(f"Solar term index must be in 0-23, got {index}")
        return self._term(year, index)

    def lichun(self, year: int) -> datetime:
        """Moment of Li Chun, the Year-pillar pivot, for a civil year."""
        return self.term_moment(year, LI_CHUN).moment

    # --- lookups around an instant -------------------------------------

    def _window(self, instant: datetime, jie_only: bool) -> tuple[datetime, list[SolarTerm]]:
        instant = to_beijing_time(instant)
        self.check_year(instant.year)
        terms = []
        for year in (instant.year - 1, instant.year, instant.year + 1):
            terms.extend(t for t in self._terms(year) if t.is_jie or not jie_only)
        return instant, terms

    def current_term(self, instant: datetime) -> SolarTerm:
        """The term whose interval [term, next term) contains `instant`."""
        instant, terms = self._window(instant, jie_only=False)
        return _last_at_or_before(terms, instant)

    def previous_jie(self, instant: datetime) -> SolarTerm:
        """Latest Jie term at or before `instant`."""
        instant, terms = self._window(instant, jie_only=True)
        return _last_at_or_before(terms, instant)

    def next_jie(self, instant: datetime) -> SolarTerm:
        """Earliest Jie term strictly after `instant`."""
        instant, terms = self._window(instant, jie_only=True)
        for term in terms:
            if term.moment > instant:
                return term
        raise RuntimeError(f"No Jie term found after {instant.isoformat()}")


def _last_at_or_before(terms: list[SolarTerm], instant: datetime) -> SolarTerm:
    found: Optional[SolarTerm] = None
    for term in terms:
        if term.moment <= instant:
            found = term
        else:
            break
    if found is None:
        raise RuntimeError(f"No solar term found at or before {instant.isoformat()}")
    return found


@lru_cache(maxsize=1)
def default_calculator() -> SolarTermCalculator:
    return SolarTermCalculator()


def solar_terms_for_year(year: int) -> list[SolarTerm]:
    """The 24 solar terms of `year` from the default calculator."""
    return default_calculator().terms_for_year(year)


if __name__ == "__main__":
    import sys

    year = int(sys.argv[1]) if len(sys.argv) > 1 else datetime.now(BEIJING_TZ).year
    for term in solar_terms_for_year(year):
        print(f"  {term.definition.pinyin:12s} {term.name}: {term.moment:%m-%d %H:%M}")
