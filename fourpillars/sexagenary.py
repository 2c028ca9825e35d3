"""
Sexagenary model: stems, branches, elements and the 60-term cycle.

Handles:
- The 10 Heavenly Stems and 12 Earthly Branches (with hidden stems)
- Sexagenary index <-> (stem, branch) resolution
- Five-element relations (generating / controlling cycles)
- Ten Gods classification between two stems

Everything here is constant data or a pure function of its arguments.
"""

from dataclasses import dataclass
from enum import Enum


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Polarity(Enum):
    YANG = "yang"
    YIN = "yin"


class Element(Enum):
    WOOD = "wood"
    FIRE = "fire"
    EARTH = "earth"
    METAL = "metal"
    WATER = "water"

    @property
    def chinese(self) -> str:
        return ELEMENT_CHINESE[self]


ELEMENT_CHINESE = {
    Element.WOOD: "木",
    Element.FIRE: "火",
    Element.EARTH: "土",
    Element.METAL: "金",
    Element.WATER: "水",
}


class PillarRole(Enum):
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    HOUR = "hour"
    DECADE = "decade"   # Da Yun step
    ANNUAL = "annual"   # Liu Nian overlay


@dataclass(frozen=True)
class HeavenlyStem:
    chinese: str
    pinyin: str
    element: Element
    polarity: Polarity
    index: int  # 0-9 in the cycle

    def __str__(self):
        return f"{self.pinyin} ({self.polarity.value} {self.element.value})"

    def to_dict(self) -> dict:
        return {
            "chinese": self.chinese,
            "pinyin": self.pinyin,
            "element": self.element.value,
            "polarity": self.polarity.value,
        }


@dataclass(frozen=True)
class EarthlyBranch:
    chinese: str
    pinyin: str
    animal: str
    element: Element
    polarity: Polarity
    index: int  # 0-11 in the cycle
    hidden_stems: tuple[int, ...]  # stem indices [main_qi, middle_qi, residual_qi]

    def __str__(self):
        return f"{self.pinyin} ({self.animal})"

    def weighted_hidden_stems(self) -> list[tuple["HeavenlyStem", float]]:
        """Hidden stems with their weights: main qi 1.0, the others 0.5."""
        return [
            (HEAVENLY_STEMS[idx], PRIMARY_HIDDEN_WEIGHT if pos == 0 else SECONDARY_HIDDEN_WEIGHT)
            for pos, idx in enumerate(self.hidden_stems)
        ]

    def to_dict(self) -> dict:
        return {
            "chinese": self.chinese,
            "pinyin": self.pinyin,
            "animal": self.animal,
            "element": self.element.value,
            "polarity": self.polarity.value,
            "hidden_stems": [HEAVENLY_STEMS[idx].pinyin for idx in self.hidden_stems],
        }


PRIMARY_HIDDEN_WEIGHT = 1.0
SECONDARY_HIDDEN_WEIGHT = 0.5


# ============================================================
# STEM AND BRANCH DEFINITIONS
# ============================================================

HEAVENLY_STEMS = (
    HeavenlyStem("甲", "Jia", Element.WOOD, Polarity.YANG, 0),
    HeavenlyStem("乙", "Yi", Element.WOOD, Polarity.YIN, 1),
    HeavenlyStem("丙", "Bing", Element.FIRE, Polarity.YANG, 2),
    HeavenlyStem("丁", "Ding", Element.FIRE, Polarity.YIN, 3),
    HeavenlyStem("戊", "Wu", Element.EARTH, Polarity.YANG, 4),
    HeavenlyStem("己", "Ji", Element.EARTH, Polarity.YIN, 5),
    HeavenlyStem("庚", "Geng", Element.METAL, Polarity.YANG, 6),
    HeavenlyStem("辛", "Xin", Element.METAL, Polarity.YIN, 7),
    HeavenlyStem("壬", "Ren", Element.WATER, Polarity.YANG, 8),
    HeavenlyStem("癸", "Gui", Element.WATER, Polarity.YIN, 9),
)

EARTHLY_BRANCHES = (
    EarthlyBranch("子", "Zi", "Rat", Element.WATER, Polarity.YANG, 0,
                  (9,)),          # Gui
    EarthlyBranch("丑", "Chou", "Ox", Element.EARTH, Polarity.YIN, 1,
                  (5, 9, 7)),     # Ji, Gui, Xin
    EarthlyBranch("寅", "Yin", "Tiger", Element.WOOD, Polarity.YANG, 2,
                  (0, 2, 4)),     # Jia, Bing, Wu
    EarthlyBranch("卯", "Mao", "Rabbit", Element.WOOD, Polarity.YIN, 3,
                  (1,)),          # Yi
    EarthlyBranch("辰", "Chen", "Dragon", Element.EARTH, Polarity.YANG, 4,
                  (4, 1, 9)),     # Wu, Yi, Gui
    EarthlyBranch("巳", "Si", "Snake", Element.FIRE, Polarity.YIN, 5,
                  (2, 6, 4)),     # Bing, Geng, Wu
    EarthlyBranch("午", "Wu", "Horse", Element.FIRE, Polarity.YANG, 6,
                  (3, 5)),        # Ding, Ji
    EarthlyBranch("未", "Wei", "Goat", Element.EARTH, Polarity.YIN, 7,
                  (5, 3, 1)),     # Ji, Ding, Yi
    EarthlyBranch("申", "Shen", "Monkey", Element.METAL, Polarity.YANG, 8,
                  (6, 8, 4)),     # Geng, Ren, Wu
    EarthlyBranch("酉", "You", "Rooster", Element.METAL, Polarity.YIN, 9,
                  (7,)),          # Xin
    EarthlyBranch("戌", "Xu", "Dog", Element.EARTH, Polarity.YANG, 10,
                  (4, 7, 3)),     # Wu, Xin, Ding
    EarthlyBranch("亥", "Hai", "Pig", Element.WATER, Polarity.YIN, 11,
                  (8, 0)),        # Ren, Jia
)

# Lookup helpers
STEM_BY_PINYIN = {s.pinyin: s for s in HEAVENLY_STEMS}
STEM_BY_CHINESE = {s.chinese: s for s in HEAVENLY_STEMS}
BRANCH_BY_PINYIN = {b.pinyin: b for b in EARTHLY_BRANCHES}
BRANCH_BY_CHINESE = {b.chinese: b for b in EARTHLY_BRANCHES}


# ============================================================
# SEXAGENARY CYCLE
# ============================================================

CYCLE_LENGTH = 60


def sexagenary_index(stem_index: int, branch_index: int) -> int:
    """
    Resolve a (stem, branch) pair to its position 0-59 in the cycle.

    Only same-parity pairs exist: 甲子 is 0, 乙丑 is 1, ... 癸亥 is 59.
    The index is the unique i with i % 10 == stem and i % 12 == branch,
    which is (6 * stem - 5 * branch) mod 60.
    """
    if stem_index % 2 != branch_index % 2:
        raise ValueError(
            f"Stem {stem_index} and branch {branch_index} differ in polarity; "
            "no sexagenary pair exists"
        )
    return (6 * (stem_index % 10) - 5 * (branch_index % 12)) % CYCLE_LENGTH


def stem_of(index: int) -> HeavenlyStem:
    return HEAVENLY_STEMS[index % CYCLE_LENGTH % 10]


def branch_of(index: int) -> EarthlyBranch:
    return EARTHLY_BRANCHES[index % CYCLE_LENGTH % 12]


@dataclass(frozen=True)
class Pillar:
    stem: HeavenlyStem
    branch: EarthlyBranch
    role: PillarRole

    @property
    def index(self) -> int:
        return sexagenary_index(self.stem.index, self.branch.index)

    @property
    def chinese(self) -> str:
        return self.stem.chinese + self.branch.chinese

    def shifted(self, steps: int, role: PillarRole) -> "Pillar":
        """The pillar `steps` positions away in the 60-cycle."""
        return pillar_from_index(self.index + steps, role)

    def __str__(self):
        return f"{self.stem.pinyin} {self.branch.pinyin} ({self.stem.polarity.value} {self.stem.element.value} {self.branch.animal})"

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "index": self.index,
            "stem": self.stem.to_dict(),
            "branch": self.branch.to_dict(),
            "combined": self.chinese,
            "description": str(self),
        }


def pillar_from_index(index: int, role: PillarRole) -> Pillar:
    return Pillar(stem=stem_of(index), branch=branch_of(index), role=role)


def make_pillar(stem_index: int, branch_index: int, role: PillarRole) -> Pillar:
    """Build a pillar from a compatible (stem, branch) pair."""
    return pillar_from_index(sexagenary_index(stem_index, branch_index), role)


# ============================================================
# FIVE ELEMENTS
# ============================================================

class ElementRelation(Enum):
    """How another element stands to a reference element."""
    SAME = "same"
    GENERATES = "generates"          # reference generates the other (output)
    GENERATED_BY = "generated_by"    # the other generates the reference (resource)
    CONTROLS = "controls"            # reference controls the other (wealth)
    CONTROLLED_BY = "controlled_by"  # the other controls the reference (officer)


# Generating cycle: Wood → Fire → Earth → Metal → Water → Wood
GENERATING_CYCLE = {
    Element.WOOD: Element.FIRE,
    Element.FIRE: Element.EARTH,
    Element.EARTH: Element.METAL,
    Element.METAL: Element.WATER,
    Element.WATER: Element.WOOD,
}

# Controlling cycle: each element controls the one two steps ahead
CONTROLLING_CYCLE = {
    Element.WOOD: Element.EARTH,
    Element.EARTH: Element.WATER,
    Element.WATER: Element.FIRE,
    Element.FIRE: Element.METAL,
    Element.METAL: Element.WOOD,
}

GENERATED_BY = {child: parent for parent, child in GENERATING_CYCLE.items()}
CONTROLLED_BY = {target: source for source, target in CONTROLLING_CYCLE.items()}


def element_relation(reference: Element, other: Element) -> ElementRelation:
    """Classify `other` from the point of view of `reference`."""
    if reference == other:
        return ElementRelation.SAME
    if GENERATING_CYCLE[reference] == other:
        return ElementRelation.GENERATES
    if GENERATING_CYCLE[other] == reference:
        return ElementRelation.GENERATED_BY
    if CONTROLLING_CYCLE[reference] == other:
        return ElementRelation.CONTROLS
    if CONTROLLING_CYCLE[other] == reference:
        return ElementRelation.CONTROLLED_BY
    raise ValueError(f"No relation between {reference} and {other}")


def related_element(reference: Element, relation: ElementRelation) -> Element:
    """Inverse of element_relation: the element standing in `relation` to `reference`."""
    if relation is ElementRelation.SAME:
        return reference
    if relation is ElementRelation.GENERATES:
        return GENERATING_CYCLE[reference]
    if relation is ElementRelation.GENERATED_BY:
        return GENERATED_BY[reference]
    if relation is ElementRelation.CONTROLS:
        return CONTROLLING_CYCLE[reference]
    return CONTROLLED_BY[reference]


# ============================================================
# TEN GODS (十神)
# ============================================================

class TenGod(Enum):
    COMPANION = "比肩"
    ROB_WEALTH = "劫财"
    EATING_GOD = "食神"
    HURTING_OFFICER = "伤官"
    INDIRECT_WEALTH = "偏财"
    DIRECT_WEALTH = "正财"
    SEVEN_KILLINGS = "七杀"
    DIRECT_OFFICER = "正官"
    INDIRECT_RESOURCE = "偏印"
    DIRECT_RESOURCE = "正印"

    @property
    def label(self) -> str:
        return TEN_GOD_LABELS[self]


TEN_GOD_LABELS = {
    TenGod.COMPANION: "Companion (比肩 Bi Jian)",
    TenGod.ROB_WEALTH: "Rob Wealth (劫财 Jie Cai)",
    TenGod.EATING_GOD: "Eating God (食神 Shi Shen)",
    TenGod.HURTING_OFFICER: "Hurting Officer (伤官 Shang Guan)",
    TenGod.INDIRECT_WEALTH: "Indirect Wealth (偏财 Pian Cai)",
    TenGod.DIRECT_WEALTH: "Direct Wealth (正财 Zheng Cai)",
    TenGod.SEVEN_KILLINGS: "7 Killings (七杀 Qi Sha)",
    TenGod.DIRECT_OFFICER: "Direct Officer (正官 Zheng Guan)",
    TenGod.INDIRECT_RESOURCE: "Indirect Resource (偏印 Pian Yin)",
    TenGod.DIRECT_RESOURCE: "Direct Resource (正印 Zheng Yin)",
}

# (relation, same_polarity): ten god
TEN_GODS = {
    (ElementRelation.SAME, True): TenGod.COMPANION,
    (ElementRelation.SAME, False): TenGod.ROB_WEALTH,
    (ElementRelation.GENERATES, True): TenGod.EATING_GOD,
    (ElementRelation.GENERATES, False): TenGod.HURTING_OFFICER,
    (ElementRelation.CONTROLS, True): TenGod.INDIRECT_WEALTH,
    (ElementRelation.CONTROLS, False): TenGod.DIRECT_WEALTH,
    (ElementRelation.CONTROLLED_BY, True): TenGod.SEVEN_KILLINGS,
    (ElementRelation.CONTROLLED_BY, False): TenGod.DIRECT_OFFICER,
    (ElementRelation.GENERATED_BY, True): TenGod.INDIRECT_RESOURCE,
    (ElementRelation.GENERATED_BY, False): TenGod.DIRECT_RESOURCE,
}


def ten_god(reference: HeavenlyStem, other: HeavenlyStem) -> TenGod:
    """
    Determine the Ten God of `other` relative to `reference` (usually the Day Master).

    Element relation picks one of five families, polarity match picks
    the member within the family.
    """
    relation = element_relation(reference.element, other.element)
    same_polarity = reference.polarity == other.polarity
    return TEN_GODS[(relation, same_polarity)]
