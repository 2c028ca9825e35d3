"""
Query surface of the BaZi engine.

BaziEngine wires the calculators together around one SolarTermCalculator.
The module-level functions delegate to a shared default engine, which holds
no mutable state beyond its caches.
"""

from datetime import datetime
from functools import lru_cache
from typing import Optional, Union

from fourpillars.dayun import DEFAULT_STEPS, DaYunCalculator, DaYunChart, DaYunStep, Gender
from fourpillars.liunian import LiuNianCalculator, LiuNianOverlay
from fourpillars.pillars import FourPillarResolver, FourPillars, ZiHourPolicy
from fourpillars.sexagenary import HeavenlyStem, TenGod
from fourpillars.sexagenary import ten_god as _ten_god
from fourpillars.solar_terms import SolarTerm, SolarTermCalculator
from fourpillars.strength import StrengthAssessment
from fourpillars.strength import assess_strength as _assess_strength


class BaziEngine:
    def __init__(self, calculator: Optional[SolarTermCalculator] = None,
                 zi_policy: ZiHourPolicy = ZiHourPolicy.SAME_DAY):
        self.calculator = calculator or SolarTermCalculator()
        self.resolver = FourPillarResolver(self.calculator, zi_policy)
        self.da_yun = DaYunCalculator(self.calculator)
        self.liu_nian = LiuNianCalculator(self.resolver)

    def resolve_four_pillars(self, birth_instant: datetime, hour_index: int,
                             zi_policy: Optional[ZiHourPolicy] = None) -> FourPillars:
        return self.resolver.resolve(birth_instant, hour_index, zi_policy)

    def solar_terms_for_year(self, year: int) -> list[SolarTerm]:
        return self.calculator.terms_for_year(year)

    def compute_da_yun(self, four_pillars: FourPillars, gender: Union[Gender, str],
                       steps: int = DEFAULT_STEPS) -> DaYunChart:
        return self.da_yun.compute(four_pillars, gender, steps)

    def compute_liu_nian(self, four_pillars: FourPillars, active_step: Optional[DaYunStep],
                         target_year: int) -> LiuNianOverlay:
        return self.liu_nian.compute(four_pillars, active_step, target_year)

    def assess_strength(self, four_pillars: FourPillars) -> StrengthAssessment:
        return _assess_strength(four_pillars)

    def ten_god(self, reference: HeavenlyStem, other: HeavenlyStem) -> TenGod:
        return _ten_god(reference, other)


@lru_cache(maxsize=1)
def default_engine() -> BaziEngine:
    return BaziEngine()


def resolve_four_pillars(birth_instant: datetime, hour_index: int,
                         zi_policy: Optional[ZiHourPolicy] = None) -> FourPillars:
    return default_engine().resolve_four_pillars(birth_instant, hour_index, zi_policy)


def solar_terms_for_year(year: int) -> list[SolarTerm]:
    return default_engine().solar_terms_for_year(year)


def compute_da_yun(four_pillars: FourPillars, gender: Union[Gender, str],
                   steps: int = DEFAULT_STEPS) -> DaYunChart:
    return default_engine().compute_da_yun(four_pillars, gender, steps)


def compute_liu_nian(four_pillars: FourPillars, active_step: Optional[DaYunStep],
                     target_year: int) -> LiuNianOverlay:
    return default_engine().compute_liu_nian(four_pillars, active_step, target_year)


def assess_strength(four_pillars: FourPillars) -> StrengthAssessment:
    return _assess_strength(four_pillars)


def ten_god(reference: HeavenlyStem, other: HeavenlyStem) -> TenGod:
    return _ten_god(reference, other)
