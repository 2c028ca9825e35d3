import unittest

from fourpillars.sexagenary import (
    EARTHLY_BRANCHES,
    HEAVENLY_STEMS,
    STEM_BY_CHINESE,
    Element,
    ElementRelation,
    PillarRole,
    TenGod,
    branch_of,
    element_relation,
    make_pillar,
    pillar_from_index,
    related_element,
    sexagenary_index,
    stem_of,
    ten_god,
)


class TestSexagenaryCycle(unittest.TestCase):
    def test_round_trip_for_every_index(self) -> None:
        for index in range(60):
            self.assertEqual(sexagenary_index(stem_of(index).index, branch_of(index).index), index)

    def test_known_positions(self) -> None:
        self.assertEqual(sexagenary_index(0, 0), 0)    # 甲子
        self.assertEqual(sexagenary_index(2, 2), 2)    # 丙寅
        self.assertEqual(sexagenary_index(6, 6), 6)    # 庚午
        self.assertEqual(sexagenary_index(9, 11), 59)  # 癸亥

    def test_mixed_parity_pair_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            sexagenary_index(0, 1)

    def test_pillar_shift_wraps_around_cycle(self) -> None:
        last = pillar_from_index(59, PillarRole.YEAR)
        self.assertEqual(last.chinese, "癸亥")
        self.assertEqual(last.shifted(1, PillarRole.DECADE).chinese, "甲子")
        self.assertEqual(pillar_from_index(0, PillarRole.YEAR).shifted(-1, PillarRole.DECADE).index, 59)

    def test_make_pillar_to_dict(self) -> None:
        pillar = make_pillar(6, 6, PillarRole.YEAR)
        out = pillar.to_dict()
        self.assertEqual(out["combined"], "庚午")
        self.assertEqual(out["role"], "year")
        self.assertEqual(out["branch"]["animal"], "Horse")
        self.assertEqual(out["branch"]["hidden_stems"], ["Ding", "Ji"])

    def test_hidden_stem_weights(self) -> None:
        chou = EARTHLY_BRANCHES[1]
        weights = [(s.chinese, w) for s, w in chou.weighted_hidden_stems()]
        self.assertEqual(weights, [("己", 1.0), ("癸", 0.5), ("辛", 0.5)])


class TestElementRelations(unittest.TestCase):
    def test_relations_from_wood(self) -> None:
        self.assertEqual(element_relation(Element.WOOD, Element.WOOD), ElementRelation.SAME)
        self.assertEqual(element_relation(Element.WOOD, Element.FIRE), ElementRelation.GENERATES)
        self.assertEqual(element_relation(Element.WOOD, Element.WATER), ElementRelation.GENERATED_BY)
        self.assertEqual(element_relation(Element.WOOD, Element.EARTH), ElementRelation.CONTROLS)
        self.assertEqual(element_relation(Element.WOOD, Element.METAL), ElementRelation.CONTROLLED_BY)

    def test_related_element_inverts_relation(self) -> None:
        for reference in Element:
            for other in Element:
                relation = element_relation(reference, other)
                self.assertEqual(related_element(reference, relation), other)


class TestTenGods(unittest.TestCase):
    def test_total_over_all_stem_pairs(self) -> None:
        for reference in HEAVENLY_STEMS:
            seen = set()
            for other in HEAVENLY_STEMS:
                god = ten_god(reference, other)
                self.assertIsInstance(god, TenGod)
                seen.add(god)
            # Each of the ten stems maps to a different category.
            self.assertEqual(len(seen), 10)

    def test_same_stem_is_companion(self) -> None:
        for stem in HEAVENLY_STEMS:
            self.assertEqual(ten_god(stem, stem), TenGod.COMPANION)

    def test_known_categories_for_jia(self) -> None:
        jia = STEM_BY_CHINESE["甲"]
        expected = {
            "乙": TenGod.ROB_WEALTH,
            "丙": TenGod.EATING_GOD,
            "丁": TenGod.HURTING_OFFICER,
            "戊": TenGod.INDIRECT_WEALTH,
            "己": TenGod.DIRECT_WEALTH,
            "庚": TenGod.SEVEN_KILLINGS,
            "辛": TenGod.DIRECT_OFFICER,
            "壬": TenGod.INDIRECT_RESOURCE,
            "癸": TenGod.DIRECT_RESOURCE,
        }
        for chinese, god in expected.items():
            self.assertEqual(ten_god(jia, STEM_BY_CHINESE[chinese]), god, chinese)

    def test_label(self) -> None:
        self.assertEqual(TenGod.SEVEN_KILLINGS.label, "7 Killings (七杀 Qi Sha)")


if __name__ == "__main__":
    unittest.main()
