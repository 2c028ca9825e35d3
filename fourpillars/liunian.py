"""
Annual pillar (流年 Liu Nian) overlay.

The pillar of a calendar year is checked against the natal Year, Month,
Day and Hour pillars and the active Da Yun pillar. Every matching relation
becomes a finding with a signed weight; all findings count toward the score,
so competing influences offset each other instead of one winning.

Design principle: this module COMPUTES and FLAGS. It does not interpret.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from fourpillars.dayun import DaYunChart, DaYunStep
from fourpillars.pillars import FourPillarResolver, FourPillars
from fourpillars.sexagenary import (
    EARTHLY_BRANCHES,
    Element,
    ElementRelation,
    Pillar,
    PillarRole,
    TenGod,
    element_relation,
    ten_god,
)

logger = logging.getLogger(__name__)


class InteractionKind(Enum):
    # Listed in evaluation order. Findings are reported in this order.
    STEM_COMBINATION = "天干五合"
    STEM_CLASH = "天干相冲"
    STEM_SUPPORTS_DAY_MASTER = "生我"
    STEM_CONTROLS_DAY_MASTER = "克我"
    SIX_HARMONY = "六合"
    SIX_CLASH = "六冲"
    TRIAD = "三合"
    HALF_TRIAD = "半合"
    HARM = "六害"
    PUNISHMENT = "相刑"
    SELF_PUNISHMENT = "自刑"
    TAI_SUI = "值太岁"


KIND_ORDER = {kind: i for i, kind in enumerate(InteractionKind)}


BASE_WEIGHTS = {
    InteractionKind.STEM_COMBINATION: 5,
    InteractionKind.STEM_CLASH: -5,
    InteractionKind.STEM_SUPPORTS_DAY_MASTER: 8,
    InteractionKind.STEM_CONTROLS_DAY_MASTER: -8,
    InteractionKind.SIX_HARMONY: 4,
    InteractionKind.SIX_CLASH: -8,
    InteractionKind.TRIAD: 6,
    InteractionKind.HALF_TRIAD: 2,
    InteractionKind.HARM: -4,
    InteractionKind.PUNISHMENT: -3,
    InteractionKind.SELF_PUNISHMENT: -3,
    InteractionKind.TAI_SUI: -3,
}

# Element relation of the annual stem to the Day Master, scored once and
# only when the two stems neither combine nor clash.
DAY_MASTER_RELATIONS = {
    ElementRelation.GENERATED_BY: InteractionKind.STEM_SUPPORTS_DAY_MASTER,
    ElementRelation.CONTROLLED_BY: InteractionKind.STEM_CONTROLS_DAY_MASTER,
}

# The year branch (Tai Sui) and the day pillar (Day Master) count double.
TARGET_EMPHASIS = {
    PillarRole.YEAR: 2,
    PillarRole.MONTH: 1,
    PillarRole.DAY: 2,
    PillarRole.HOUR: 1,
    PillarRole.DECADE: 1,
}


# ============================================================
# RELATION TABLES
# ============================================================

# Five stem combinations (天干五合) and their transformed element
STEM_COMBINATIONS = {
    frozenset({0, 5}): Element.EARTH,   # Jia-Ji
    frozenset({1, 6}): Element.METAL,   # Yi-Geng
    frozenset({2, 7}): Element.WATER,   # Bing-Xin
    frozenset({3, 8}): Element.WOOD,    # Ding-Ren
    frozenset({4, 9}): Element.FIRE,    # Wu-Gui
}

# Stem clashes (天干相冲)
STEM_CLASHES = {
    frozenset({0, 6}),  # Jia-Geng
    frozenset({1, 7}),  # Yi-Xin
    frozenset({2, 8}),  # Bing-Ren
    frozenset({3, 9}),  # Ding-Gui
}

# Six Harmonies (六合)
SIX_HARMONIES = {
    frozenset({0, 1}): Element.EARTH,    # Zi-Chou
    frozenset({2, 11}): Element.WOOD,    # Yin-Hai
    frozenset({3, 10}): Element.FIRE,    # Mao-Xu
    frozenset({4, 9}): Element.METAL,    # Chen-You
    frozenset({5, 8}): Element.WATER,    # Si-Shen
    frozenset({6, 7}): Element.FIRE,     # Wu-Wei
}

# Six Clashes (六冲): branches six apart
SIX_CLASHES = {frozenset({i, i + 6}) for i in range(6)}

# Three Harmony frames (三合)
TRIADS = {
    frozenset({8, 0, 4}): Element.WATER,   # Shen-Zi-Chen
    frozenset({2, 6, 10}): Element.FIRE,   # Yin-Wu-Xu
    frozenset({11, 3, 7}): Element.WOOD,   # Hai-Mao-Wei
    frozenset({5, 9, 1}): Element.METAL,   # Si-You-Chou
}

# Six Harms (六害)
SIX_HARMS = {
    frozenset({0, 7}),   # Zi-Wei
    frozenset({1, 6}),   # Chou-Wu
    frozenset({2, 5}),   # Yin-Si
    frozenset({3, 4}),   # Mao-Chen
    frozenset({8, 11}),  # Shen-Hai
    frozenset({9, 10}),  # You-Xu
}

# Punishments (刑)
PUNISHMENT_GROUPS = (
    frozenset({2, 5, 8}),    # ungrateful: Yin-Si-Shen
    frozenset({1, 10, 7}),   # uncivilized: Chou-Xu-Wei
    frozenset({0, 3}),       # rude: Zi-Mao
)
SELF_PUNISHING = frozenset({4, 6, 9, 11})  # Chen, Wu, You, Hai


class FortuneLevel(Enum):
    GREAT = "上吉"
    GOOD = "小吉"
    NEUTRAL = "平"
    POOR = "小凶"
    BAD = "凶"


BASE_RATING = 60
MIN_RATING = 20
MAX_RATING = 100

LEVEL_THRESHOLDS = (
    (80, FortuneLevel.GREAT),
    (65, FortuneLevel.GOOD),
    (50, FortuneLevel.NEUTRAL),
    (35, FortuneLevel.POOR),
)


@dataclass(frozen=True)
class Interaction:
    kind: InteractionKind
    targets: tuple[PillarRole, ...]
    weight: int
    detail: str
    element: Optional[Element] = None

    def to_dict(self) -> dict:
        out = {
            "type": self.kind.value,
            "kind": self.kind.name.lower(),
            "targets": [t.value for t in self.targets],
            "weight": self.weight,
            "detail": self.detail,
        }
        if self.element is not None:
            out["result_element"] = self.element.value
        return out


@dataclass(frozen=True)
class LiuNianOverlay:
    year: int
    pillar: Pillar
    ten_god: TenGod
    starts_at: datetime  # Li Chun of `year`
    age: int
    active_step: Optional[DaYunStep]
    findings: tuple[Interaction, ...]

    @property
    def score(self) -> int:
        return sum(f.weight for f in self.findings)

    @property
    def rating(self) -> int:
        return max(MIN_RATING, min(MAX_RATING, BASE_RATING + self.score))

    @property
    def level(self) -> FortuneLevel:
        for threshold, level in LEVEL_THRESHOLDS:
            if self.rating >= threshold:
                return level
        return FortuneLevel.BAD

    @property
    def is_handover(self) -> bool:
        """True in the year a new Da Yun step begins."""
        return self.active_step is not None and self.active_step.start_age == self.age

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "age": self.age,
            "pillar": self.pillar.to_dict(),
            "ten_god": self.ten_god.value,
            "starts_at": self.starts_at.isoformat(),
            "active_step": self.active_step.to_dict() if self.active_step else None,
            "is_handover": self.is_handover,
            "findings": [f.to_dict() for f in self.findings],
            "score": self.score,
            "rating": self.rating,
            "level": self.level.value,
        }


# ============================================================
# INTERACTION DETECTION
# ============================================================

def pair_relations(first: Pillar, second: Pillar) -> list[tuple[InteractionKind, Optional[Element], str]]:
    """
    Stem and branch relations between two pillars, in kind order.

    Triads need a third branch and are left to the callers.
    Returns (kind, transformed element or None, detail) tuples.
    """
    found = []
    stems = frozenset({first.stem.index, second.stem.index})
    branches = frozenset({first.branch.index, second.branch.index})
    stem_pair = first.stem.chinese + second.stem.chinese
    branch_pair = first.branch.chinese + second.branch.chinese

    if stems in STEM_COMBINATIONS:
        found.append((InteractionKind.STEM_COMBINATION, STEM_COMBINATIONS[stems], stem_pair))
    if stems in STEM_CLASHES:
        found.append((InteractionKind.STEM_CLASH, None, stem_pair))
    if branches in SIX_HARMONIES:
        found.append((InteractionKind.SIX_HARMONY, SIX_HARMONIES[branches], branch_pair))
    if branches in SIX_CLASHES:
        found.append((InteractionKind.SIX_CLASH, None, branch_pair))
    if branches in SIX_HARMS:
        found.append((InteractionKind.HARM, None, branch_pair))
    if len(branches) == 2 and any(branches <= g for g in PUNISHMENT_GROUPS):
        found.append((InteractionKind.PUNISHMENT, None, branch_pair))
    if len(branches) == 1 and first.branch.index in SELF_PUNISHING:
        found.append((InteractionKind.SELF_PUNISHMENT, None, branch_pair))
    return found


def _triad_of(first: int, second: int) -> Optional[tuple[frozenset, Element]]:
    if first == second:
        return None
    for group, element in TRIADS.items():
        if first in group and second in group:
            return group, element
    return None


def _triad_detail(group: frozenset) -> str:
    return "".join(EARTHLY_BRANCHES[idx].chinese for idx in sorted(group))


def _in_kind_order(findings: list[Interaction]) -> list[Interaction]:
    return sorted(findings, key=lambda f: KIND_ORDER[f.kind])


def _day_master_relation(annual: Pillar, day: Pillar) -> Optional[Interaction]:
    """The annual stem generating or controlling the Day Master, at base weight."""
    stems = frozenset({annual.stem.index, day.stem.index})
    if stems in STEM_COMBINATIONS or stems in STEM_CLASHES:
        return None
    kind = DAY_MASTER_RELATIONS.get(element_relation(day.stem.element, annual.stem.element))
    if kind is None:
        return None
    return Interaction(kind, (day.role,), BASE_WEIGHTS[kind],
                       annual.stem.chinese + day.stem.chinese, annual.stem.element)


def find_interactions(annual: Pillar, targets: list[Pillar]) -> list[Interaction]:
    """
    Every relation between the annual pillar and each target pillar.

    Pairwise findings are weighted by the target's emphasis. A complete
    triad (annual branch plus targets holding both other members) is
    reported once, lists every target holding a member, and replaces the
    half-triads of those targets. The annual stem's relation to the Day
    Master is scored once on the Day pillar. Findings come back in
    `InteractionKind` order, targets in the order given within a kind.
    """
    findings = []

    completed = set()
    for group, element in TRIADS.items():
        if annual.branch.index not in group:
            continue
        others = group - {annual.branch.index}
        members = [t for t in targets if t.branch.index in others]
        if {t.branch.index for t in members} == others:
            completed.add(group)
            findings.append(Interaction(InteractionKind.TRIAD, tuple(m.role for m in members),
                                        BASE_WEIGHTS[InteractionKind.TRIAD],
                                        _triad_detail(group), element))

    for target in targets:
        role = target.role
        emphasis = TARGET_EMPHASIS[role]
        relations = pair_relations(annual, target)

        triad = _triad_of(annual.branch.index, target.branch.index)
        if triad is not None and triad[0] not in completed:
            relations.append((InteractionKind.HALF_TRIAD, triad[1],
                              annual.branch.chinese + target.branch.chinese))

        for kind, element, detail in relations:
            findings.append(Interaction(kind, (role,), BASE_WEIGHTS[kind] * emphasis,
                                        detail, element))

        if role is PillarRole.DAY:
            relation = _day_master_relation(annual, target)
            if relation is not None:
                findings.append(relation)

        if role is PillarRole.YEAR and annual.branch.index == target.branch.index:
            findings.append(Interaction(InteractionKind.TAI_SUI, (role,),
                                        BASE_WEIGHTS[InteractionKind.TAI_SUI] * emphasis,
                                        annual.branch.chinese * 2))

    return _in_kind_order(findings)


def natal_interactions(four_pillars: FourPillars) -> list[Interaction]:
    """
    Relations among the four natal pillars themselves, at base weight.

    Complete triads are reported instead of their half-triads. Findings
    come back in `InteractionKind` order.
    """
    pillars = four_pillars.pillars
    branch_holders = {}
    for p in pillars:
        branch_holders.setdefault(p.branch.index, p.role)

    full_groups = {group: element for group, element in TRIADS.items()
                   if all(idx in branch_holders for idx in group)}

    findings = []
    for i, first in enumerate(pillars):
        for second in pillars[i + 1:]:
            roles = (first.role, second.role)
            for kind, element, detail in pair_relations(first, second):
                findings.append(Interaction(kind, roles, BASE_WEIGHTS[kind], detail, element))
            triad = _triad_of(first.branch.index, second.branch.index)
            if triad is not None and triad[0] not in full_groups:
                findings.append(Interaction(InteractionKind.HALF_TRIAD, roles,
                                            BASE_WEIGHTS[InteractionKind.HALF_TRIAD],
                                            first.branch.chinese + second.branch.chinese,
                                            triad[1]))

    for group, element in full_groups.items():
        roles = tuple(branch_holders[idx] for idx in sorted(group))
        findings.append(Interaction(InteractionKind.TRIAD, roles,
                                    BASE_WEIGHTS[InteractionKind.TRIAD],
                                    _triad_detail(group), element))
    return _in_kind_order(findings)


# ============================================================
# CALCULATOR
# ============================================================

class LiuNianCalculator:
    def __init__(self, resolver: FourPillarResolver):
        self.resolver = resolver

    def annual_pillar(self, year: int) -> Pillar:
        """Pillar taking effect at the Li Chun of `year`."""
        self.resolver.calculator.check_year(year)
        return self.resolver.year_pillar(year, role=PillarRole.ANNUAL)

    def compute(self, four_pillars: FourPillars, active_step: Optional[DaYunStep],
                target_year: int) -> LiuNianOverlay:
        annual = self.annual_pillar(target_year)
        targets = list(four_pillars.pillars)
        if active_step is not None:
            targets.append(active_step.pillar)

        findings = find_interactions(annual, targets)
        overlay = LiuNianOverlay(
            year=target_year,
            pillar=annual,
            ten_god=ten_god(four_pillars.day_master, annual.stem),
            starts_at=self.resolver.calculator.lichun(target_year),
            age=target_year - four_pillars.birth_instant.year,
            active_step=active_step,
            findings=tuple(findings),
        )
        logger.debug("Liu Nian %d %s: %d findings, score %d",
                     target_year, annual.chinese, len(findings), overlay.score)
        return overlay

    def table(self, four_pillars: FourPillars, da_yun: DaYunChart,
              start_year: int, years: int = 10) -> list[LiuNianOverlay]:
        """Overlays for consecutive years, each against the step active at that age."""
        birth_year = four_pillars.birth_instant.year
        overlays = []
        for year in range(start_year, start_year + years):
            step = da_yun.active_step(year - birth_year)
            overlays.append(self.compute(four_pillars, step, year))
        return overlays
