import unittest
from datetime import datetime

from fourpillars.astro_calendar import BEIJING_TZ
from fourpillars.dayun import DaYunCalculator
from fourpillars.errors import UnsupportedYearError
from fourpillars.liunian import (
    BASE_WEIGHTS,
    FortuneLevel,
    InteractionKind,
    LiuNianCalculator,
    find_interactions,
    natal_interactions,
)
from fourpillars.pillars import FourPillarResolver
from fourpillars.sexagenary import Element, PillarRole, TenGod, make_pillar
from fourpillars.solar_terms import SolarTermCalculator


def kinds(findings):
    return [f.kind for f in findings]


class TestFindInteractions(unittest.TestCase):
    def test_clashes_on_day_pillar_are_doubled(self) -> None:
        annual = make_pillar(0, 0, PillarRole.ANNUAL)   # 甲子
        day = make_pillar(6, 6, PillarRole.DAY)         # 庚午
        findings = find_interactions(annual, [day])
        self.assertEqual(kinds(findings), [InteractionKind.STEM_CLASH, InteractionKind.SIX_CLASH])
        self.assertEqual([f.weight for f in findings], [-10, -16])

    def test_all_matches_contribute(self) -> None:
        annual = make_pillar(0, 4, PillarRole.ANNUAL)   # 甲辰
        month = make_pillar(5, 3, PillarRole.MONTH)     # 己卯
        findings = find_interactions(annual, [month])
        self.assertEqual(kinds(findings), [InteractionKind.STEM_COMBINATION, InteractionKind.HARM])
        self.assertEqual(findings[0].element, Element.EARTH)
        self.assertEqual(sum(f.weight for f in findings), 1)

    def test_half_triad(self) -> None:
        annual = make_pillar(8, 0, PillarRole.ANNUAL)   # 壬子
        year = make_pillar(6, 8, PillarRole.YEAR)       # 庚申
        findings = find_interactions(annual, [year])
        self.assertEqual(kinds(findings), [InteractionKind.HALF_TRIAD])
        self.assertEqual(findings[0].weight, BASE_WEIGHTS[InteractionKind.HALF_TRIAD] * 2)
        self.assertEqual(findings[0].element, Element.WATER)

    def test_complete_triad_replaces_half_triads(self) -> None:
        annual = make_pillar(8, 0, PillarRole.ANNUAL)   # 壬子
        year = make_pillar(6, 8, PillarRole.YEAR)       # 庚申
        month = make_pillar(2, 4, PillarRole.MONTH)     # 丙辰
        findings = find_interactions(annual, [year, month])
        self.assertNotIn(InteractionKind.HALF_TRIAD, kinds(findings))
        triads = [f for f in findings if f.kind is InteractionKind.TRIAD]
        self.assertEqual(len(triads), 1)
        self.assertEqual(set(triads[0].targets), {PillarRole.YEAR, PillarRole.MONTH})
        self.assertEqual(triads[0].detail, "子辰申")
        self.assertEqual(triads[0].weight, 6)
        # 丙壬 still clash on the month stem
        self.assertIn(InteractionKind.STEM_CLASH, kinds(findings))

    def test_every_holder_of_a_triad_member_joins_it(self) -> None:
        annual = make_pillar(8, 0, PillarRole.ANNUAL)   # 壬子
        year = make_pillar(6, 8, PillarRole.YEAR)       # 庚申
        month = make_pillar(2, 4, PillarRole.MONTH)     # 丙辰
        hour = make_pillar(0, 8, PillarRole.HOUR)       # 甲申
        findings = find_interactions(annual, [year, month, hour])
        self.assertEqual(kinds(findings), [InteractionKind.STEM_CLASH, InteractionKind.TRIAD])
        self.assertEqual(findings[1].targets, (PillarRole.YEAR, PillarRole.MONTH, PillarRole.HOUR))
        self.assertEqual(findings[1].weight, BASE_WEIGHTS[InteractionKind.TRIAD])

    def test_findings_follow_kind_order(self) -> None:
        annual = make_pillar(8, 0, PillarRole.ANNUAL)   # 壬子
        year = make_pillar(7, 7, PillarRole.YEAR)       # 辛未
        month = make_pillar(2, 4, PillarRole.MONTH)     # 丙辰
        day = make_pillar(4, 8, PillarRole.DAY)         # 戊申
        findings = find_interactions(annual, [year, month, day])
        # the triad ranks ahead of the harm found on the earlier year target
        self.assertEqual(kinds(findings), [InteractionKind.STEM_CLASH, InteractionKind.TRIAD,
                                           InteractionKind.HARM])
        self.assertEqual(findings[2].targets, (PillarRole.YEAR,))

    def test_annual_stem_supporting_day_master(self) -> None:
        annual = make_pillar(2, 2, PillarRole.ANNUAL)   # 丙寅
        day = make_pillar(5, 1, PillarRole.DAY)         # 己丑
        findings = find_interactions(annual, [day])
        self.assertEqual(kinds(findings), [InteractionKind.STEM_SUPPORTS_DAY_MASTER])
        self.assertEqual(findings[0].weight, 8)
        self.assertEqual(findings[0].element, Element.FIRE)

    def test_annual_stem_controlling_day_master(self) -> None:
        annual = make_pillar(0, 2, PillarRole.ANNUAL)   # 甲寅
        day = make_pillar(4, 0, PillarRole.DAY)         # 戊子
        findings = find_interactions(annual, [day])
        self.assertEqual(kinds(findings), [InteractionKind.STEM_CONTROLS_DAY_MASTER])
        self.assertEqual(findings[0].weight, -8)

    def test_day_master_relation_only_on_day_pillar(self) -> None:
        annual = make_pillar(2, 2, PillarRole.ANNUAL)   # 丙寅
        hour = make_pillar(5, 1, PillarRole.HOUR)       # 己丑
        self.assertEqual(find_interactions(annual, [hour]), [])

    def test_combination_takes_precedence_over_day_master_relation(self) -> None:
        annual = make_pillar(0, 2, PillarRole.ANNUAL)   # 甲寅
        day = make_pillar(5, 1, PillarRole.DAY)         # 己丑
        findings = find_interactions(annual, [day])
        self.assertEqual(kinds(findings), [InteractionKind.STEM_COMBINATION])
        self.assertEqual(findings[0].weight, 10)

    def test_tai_sui_and_self_punishment(self) -> None:
        annual = make_pillar(2, 6, PillarRole.ANNUAL)   # 丙午
        year = make_pillar(6, 6, PillarRole.YEAR)       # 庚午
        findings = find_interactions(annual, [year])
        self.assertEqual(kinds(findings), [InteractionKind.SELF_PUNISHMENT, InteractionKind.TAI_SUI])
        self.assertEqual(sum(f.weight for f in findings), -12)

    def test_same_branch_off_year_pillar_is_not_tai_sui(self) -> None:
        annual = make_pillar(0, 0, PillarRole.ANNUAL)   # 甲子
        hour = make_pillar(2, 0, PillarRole.HOUR)       # 丙子
        self.assertEqual(find_interactions(annual, [hour]), [])

    def test_punishment_pair(self) -> None:
        annual = make_pillar(0, 2, PillarRole.ANNUAL)   # 甲寅
        hour = make_pillar(3, 5, PillarRole.HOUR)       # 丁巳
        findings = find_interactions(annual, [hour])
        self.assertEqual(kinds(findings), [InteractionKind.HARM, InteractionKind.PUNISHMENT])
        self.assertEqual(sum(f.weight for f in findings), -7)


class TestLiuNianCalculator(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        calc = SolarTermCalculator()
        resolver = FourPillarResolver(calc)
        cls.liu_nian = LiuNianCalculator(resolver)
        cls.da_yun = DaYunCalculator(calc)
        cls.fp = resolver.resolve(datetime(1990, 3, 15, 10, 30, tzinfo=BEIJING_TZ), 5)

    def test_overlay_without_decade(self) -> None:
        overlay = self.liu_nian.compute(self.fp, None, 2024)
        self.assertEqual(overlay.pillar.chinese, "甲辰")
        self.assertEqual(overlay.pillar.role, PillarRole.ANNUAL)
        self.assertEqual(overlay.ten_god, TenGod.DIRECT_OFFICER)
        self.assertEqual(len(overlay.findings), 6)
        self.assertEqual(overlay.score, -2)
        self.assertEqual(overlay.rating, 58)
        self.assertEqual(overlay.level, FortuneLevel.NEUTRAL)
        self.assertEqual(overlay.age, 34)
        self.assertEqual(overlay.starts_at.date().isoformat(), "2024-02-04")

    def test_tai_sui_year(self) -> None:
        overlay = self.liu_nian.compute(self.fp, None, 2026)
        self.assertEqual(overlay.pillar.chinese, "丙午")
        # 丙 fire generates the 己 earth Day Master
        self.assertEqual(kinds(overlay.findings),
                         [InteractionKind.STEM_SUPPORTS_DAY_MASTER,
                          InteractionKind.SELF_PUNISHMENT, InteractionKind.TAI_SUI])
        self.assertEqual(overlay.findings[0].weight, 8)
        self.assertEqual(overlay.findings[0].targets, (PillarRole.DAY,))
        self.assertEqual(overlay.rating, 56)
        self.assertEqual(overlay.level, FortuneLevel.NEUTRAL)

    def test_wood_year_controls_earth_day_master(self) -> None:
        overlay = self.liu_nian.compute(self.fp, None, 2025)
        self.assertEqual(overlay.pillar.chinese, "乙巳")
        # 乙庚 combine on the year stem; 乙 wood controls the 己 earth Day Master
        self.assertEqual([(f.kind, f.targets, f.weight) for f in overlay.findings], [
            (InteractionKind.STEM_COMBINATION, (PillarRole.YEAR,), 10),
            (InteractionKind.STEM_CONTROLS_DAY_MASTER, (PillarRole.DAY,), -8),
        ])
        self.assertEqual(overlay.findings[1].element, Element.WOOD)
        self.assertEqual(overlay.rating, 62)

    def test_decade_pillar_is_a_target(self) -> None:
        chart = self.da_yun.compute(self.fp, "male")
        step = chart.active_step(34)
        overlay = self.liu_nian.compute(self.fp, step, 2024)
        self.assertEqual(overlay.active_step, step)
        decade = [f for f in overlay.findings if PillarRole.DECADE in f.targets]
        # 甲辰 against 壬午: no stem or branch relation
        self.assertEqual(decade, [])

    def test_rating_is_clamped(self) -> None:
        overlay = self.liu_nian.compute(self.fp, None, 2024)
        self.assertTrue(20 <= overlay.rating <= 100)

    def test_table_marks_handover_years(self) -> None:
        chart = self.da_yun.compute(self.fp, "male")
        handover_year = 1990 + chart.steps[2].start_age
        table = self.liu_nian.table(self.fp, chart, handover_year - 1, 3)
        self.assertEqual([o.year for o in table], [handover_year - 1, handover_year, handover_year + 1])
        self.assertEqual([o.is_handover for o in table], [False, True, False])
        self.assertEqual(table[0].active_step.number, 2)
        self.assertEqual(table[1].active_step.number, 3)

    def test_unsupported_year(self) -> None:
        with self.assertRaises(UnsupportedYearError):
            self.liu_nian.compute(self.fp, None, 2101)

    def test_to_dict(self) -> None:
        out = self.liu_nian.compute(self.fp, None, 2024).to_dict()
        self.assertEqual(out["pillar"]["combined"], "甲辰")
        self.assertEqual(out["level"], "平")
        self.assertEqual([f["type"] for f in out["findings"]],
                         ["天干五合", "天干五合", "天干五合", "天干相冲", "六害", "六害"])
        self.assertEqual(out["findings"][0]["targets"], ["month"])
        self.assertEqual(out["findings"][3]["targets"], ["year"])

    def test_natal_interactions(self) -> None:
        self.assertEqual(natal_interactions(self.fp), [])


if __name__ == "__main__":
    unittest.main()
