"""
Day Master strength and favourable elements.

The score adds three parts:
- month authority: the seasonal state of the Day Master's element in the month branch
- visible stems: Year, Month and Hour stems by their relation to the Day Master
- hidden stems: every branch's hidden stems, scaled 1.0 (main qi) / 0.5 (others)

Strong charts are drained (output, wealth, officer); weak charts are
supported (peers, resource). Balanced charts lean toward whatever
element is scarcest.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from fourpillars.pillars import FourPillars
from fourpillars.sexagenary import (
    CONTROLLING_CYCLE,
    GENERATING_CYCLE,
    Element,
    ElementRelation,
    HeavenlyStem,
    Pillar,
    element_relation,
    related_element,
)

logger = logging.getLogger(__name__)


class SeasonalState(Enum):
    PROSPERING = "旺"
    SUPPORTED = "相"
    RESTING = "休"
    TRAPPED = "囚"
    DEAD = "死"


MONTH_AUTHORITY_POINTS = {
    SeasonalState.PROSPERING: 40,
    SeasonalState.SUPPORTED: 25,
    SeasonalState.RESTING: 0,
    SeasonalState.TRAPPED: -20,
    SeasonalState.DEAD: -35,
}

# Element ruling the season of each month branch
SEASON_ELEMENTS = {
    2: Element.WOOD, 3: Element.WOOD,                                      # Yin, Mao
    5: Element.FIRE, 6: Element.FIRE,                                      # Si, Wu
    8: Element.METAL, 9: Element.METAL,                                    # Shen, You
    11: Element.WATER, 0: Element.WATER,                                   # Hai, Zi
    4: Element.EARTH, 7: Element.EARTH, 10: Element.EARTH, 1: Element.EARTH,  # Chen, Wei, Xu, Chou
}


def _state_in_season(element: Element, season: Element) -> SeasonalState:
    if element == season:
        return SeasonalState.PROSPERING
    if GENERATING_CYCLE[season] == element:
        return SeasonalState.SUPPORTED
    if GENERATING_CYCLE[element] == season:
        return SeasonalState.RESTING
    if CONTROLLING_CYCLE[element] == season:
        return SeasonalState.TRAPPED
    return SeasonalState.DEAD


# branch index -> element -> state
MONTH_STATES = {
    branch: {element: _state_in_season(element, season) for element in Element}
    for branch, season in SEASON_ELEMENTS.items()
}

# Contribution of a stem, seen from the Day Master, by element relation
RELATION_POINTS = {
    ElementRelation.SAME: 12,            # peer
    ElementRelation.GENERATED_BY: 10,    # resource, generates me
    ElementRelation.GENERATES: -8,       # output, I generate
    ElementRelation.CONTROLLED_BY: -6,   # officer, controls me
    ElementRelation.CONTROLS: -4,        # wealth, I control
}

STRONG_THRESHOLD = 20
WEAK_THRESHOLD = -20

DRAINING_RELATIONS = (ElementRelation.GENERATES, ElementRelation.CONTROLS,
                      ElementRelation.CONTROLLED_BY)
SUPPORTING_RELATIONS = (ElementRelation.SAME, ElementRelation.GENERATED_BY)


class StrengthLevel(Enum):
    STRONG = "strong"
    BALANCED = "balanced"
    WEAK = "weak"


@dataclass(frozen=True)
class StrengthAssessment:
    score: int
    level: StrengthLevel
    favorable: tuple[Element, ...]
    unfavorable: tuple[Element, ...]
    month_state: SeasonalState
    month_points: int
    stem_points: int
    hidden_points: int
    element_distribution: Mapping[Element, float]  # read-only view

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "level": self.level.value,
            "favorable": [e.value for e in self.favorable],
            "unfavorable": [e.value for e in self.unfavorable],
            "month_state": self.month_state.value,
            "breakdown": {
                "month": self.month_points,
                "stems": self.stem_points,
                "hidden_stems": self.hidden_points,
            },
            "element_distribution": {e.value: v for e, v in self.element_distribution.items()},
        }


def month_state(day_master: HeavenlyStem, month_branch_index: int) -> SeasonalState:
    return MONTH_STATES[month_branch_index][day_master.element]


def stem_contribution(day_master: HeavenlyStem, stem: HeavenlyStem, weight: float = 1.0) -> int:
    """Signed points of one stem, scaled by weight and rounded."""
    return round(RELATION_POINTS[element_relation(day_master.element, stem.element)] * weight)


def element_distribution(pillars: tuple[Pillar, ...], include_hidden: bool = True) -> dict[Element, float]:
    """
    Element presence across the pillars.

    Visible stems weigh 1.0; hidden stems 1.0 for the main qi and 0.5
    for the middle and residual qi.
    """
    distribution = {e: 0.0 for e in Element}
    for pillar in pillars:
        distribution[pillar.stem.element] += 1.0
        if include_hidden:
            for stem, weight in pillar.branch.weighted_hidden_stems():
                distribution[stem.element] += weight
    return distribution


def classify(score: int) -> StrengthLevel:
    if score >= STRONG_THRESHOLD:
        return StrengthLevel.STRONG
    if score <= WEAK_THRESHOLD:
        return StrengthLevel.WEAK
    return StrengthLevel.BALANCED


def _elements_for(day_master: Element, relations) -> tuple[Element, ...]:
    return tuple(related_element(day_master, r) for r in relations)


def favorable_elements(day_master: HeavenlyStem, level: StrengthLevel,
                       distribution: dict[Element, float]) -> tuple[tuple[Element, ...], tuple[Element, ...]]:
    """(favorable, unfavorable) elements for a strength level."""
    if level is StrengthLevel.STRONG:
        return (_elements_for(day_master.element, DRAINING_RELATIONS),
                _elements_for(day_master.element, SUPPORTING_RELATIONS))
    if level is StrengthLevel.WEAK:
        return (_elements_for(day_master.element, SUPPORTING_RELATIONS),
                _elements_for(day_master.element, DRAINING_RELATIONS))

    lowest = min(distribution.values())
    highest = max(distribution.values())
    if lowest == highest:
        return (), ()
    weakest = tuple(e for e in Element if distribution[e] == lowest)
    strongest = tuple(e for e in Element if distribution[e] == highest)
    return weakest, strongest


def assess_strength(four_pillars: FourPillars) -> StrengthAssessment:
    day_master = four_pillars.day_master

    state = month_state(day_master, four_pillars.month.branch.index)
    month_points = MONTH_AUTHORITY_POINTS[state]

    visible = (four_pillars.year.stem, four_pillars.month.stem, four_pillars.hour.stem)
    stem_points = sum(stem_contribution(day_master, stem) for stem in visible)

    hidden_points = sum(
        stem_contribution(day_master, stem, weight)
        for pillar in four_pillars.pillars
        for stem, weight in pillar.branch.weighted_hidden_stems()
    )

    score = month_points + stem_points + hidden_points
    level = classify(score)
    distribution = element_distribution(four_pillars.pillars)
    favorable, unfavorable = favorable_elements(day_master, level, distribution)

    logger.debug("Strength of %s: %d (%s), month %s", day_master.chinese, score,
                 level.value, state.value)
    return StrengthAssessment(
        score=score,
        level=level,
        favorable=favorable,
        unfavorable=unfavorable,
        month_state=state,
        month_points=month_points,
        stem_points=stem_points,
        hidden_points=hidden_points,
        element_distribution=MappingProxyType(distribution),
    )
