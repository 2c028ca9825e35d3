import unittest
from datetime import datetime

from fourpillars.astro_calendar import BEIJING_TZ, hour_index_for
from fourpillars.dayun import (
    DaYunCalculator,
    Direction,
    Gender,
    luck_direction,
    starting_age_from_days,
)
from fourpillars.pillars import FourPillarResolver
from fourpillars.sexagenary import STEM_BY_CHINESE, PillarRole, TenGod
from fourpillars.solar_terms import SolarTermCalculator


class TestStartingAgeRounding(unittest.TestCase):
    def test_boundaries(self) -> None:
        self.assertEqual(starting_age_from_days(0), (0, 0))
        self.assertEqual(starting_age_from_days(1), (0, 4))
        self.assertEqual(starting_age_from_days(2), (0, 8))
        self.assertEqual(starting_age_from_days(3), (1, 0))

    def test_fractional_days(self) -> None:
        self.assertEqual(starting_age_from_days(4.5), (1, 6))
        self.assertEqual(starting_age_from_days(0.125), (0, 1))  # 0.5 month rounds up
        self.assertEqual(starting_age_from_days(2.9), (1, 0))    # 11.6 months carries

    def test_negative_days_rejected(self) -> None:
        with self.assertRaises(ValueError):
            starting_age_from_days(-1)


class TestDirection(unittest.TestCase):
    def test_direction_table(self) -> None:
        jia, yi = STEM_BY_CHINESE["甲"], STEM_BY_CHINESE["乙"]
        self.assertEqual(luck_direction(jia, Gender.MALE), Direction.FORWARD)
        self.assertEqual(luck_direction(jia, "female"), Direction.BACKWARD)
        self.assertEqual(luck_direction(yi, "male"), Direction.BACKWARD)
        self.assertEqual(luck_direction(yi, Gender.FEMALE), Direction.FORWARD)

    def test_unknown_gender(self) -> None:
        with self.assertRaises(ValueError):
            luck_direction(STEM_BY_CHINESE["甲"], "other")


class TestDaYunCalculator(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        calc = SolarTermCalculator()
        cls.calc = calc
        cls.resolver = FourPillarResolver(calc)
        cls.da_yun = DaYunCalculator(calc)
        cls.fp = cls.resolver.resolve(datetime(1990, 3, 15, 10, 30, tzinfo=BEIJING_TZ), 5)

    def test_forward_sequence(self) -> None:
        chart = self.da_yun.compute(self.fp, "male", steps=8)
        self.assertEqual(chart.direction, Direction.FORWARD)
        self.assertEqual(chart.starting_age.target_term.name, "清明")
        self.assertEqual(chart.starting_age.years, 7)
        self.assertEqual([s.pillar.chinese for s in chart.steps[:3]], ["庚辰", "辛巳", "壬午"])
        self.assertEqual(len(chart.steps), 8)
        first = chart.steps[0]
        self.assertEqual((first.start_age, first.end_age), (7, 16))
        self.assertEqual(first.pillar.role, PillarRole.DECADE)
        self.assertEqual(first.ten_god, TenGod.HURTING_OFFICER)

    def test_backward_sequence(self) -> None:
        chart = self.da_yun.compute(self.fp, "female", steps=3)
        self.assertEqual(chart.direction, Direction.BACKWARD)
        self.assertEqual(chart.starting_age.target_term.name, "惊蛰")
        self.assertEqual(chart.starting_age.years, 3)
        self.assertEqual([s.pillar.chinese for s in chart.steps], ["戊寅", "丁丑", "丙子"])

    def test_consecutive_steps_differ_by_one(self) -> None:
        for gender in Gender:
            chart = self.da_yun.compute(self.fp, gender)
            offset = chart.direction.step
            for earlier, later in zip(chart.steps, chart.steps[1:]):
                self.assertEqual((later.pillar.index - earlier.pillar.index) % 60, offset % 60)
                self.assertEqual(later.start_age - earlier.start_age, 10)
                self.assertEqual(later.start_year - earlier.start_year, 10)

    def test_born_on_jie_counts_zero_days_backward(self) -> None:
        lichun = self.calc.lichun(1990)
        fp = self.resolver.resolve(lichun, hour_index_for(lichun.hour))
        start = self.da_yun.starting_age(fp.birth_instant, Direction.BACKWARD)
        self.assertEqual(start.target_term.name, "立春")
        self.assertEqual((start.years, start.months), (0, 0))

    def test_active_step_lookup(self) -> None:
        chart = self.da_yun.compute(self.fp, "male")
        self.assertIsNone(chart.active_step(3))
        self.assertEqual(chart.active_step(7).number, 1)
        self.assertEqual(chart.active_step(34).pillar.chinese, "壬午")
        step = chart.step_for_year(chart.steps[1].start_year)
        self.assertEqual(step.number, 2)
        self.assertIsNone(chart.step_for_year(1990))

    def test_invalid_step_count(self) -> None:
        with self.assertRaises(ValueError):
            self.da_yun.compute(self.fp, "male", steps=0)

    def test_to_dict(self) -> None:
        out = self.da_yun.compute(self.fp, "male", steps=2).to_dict()
        self.assertEqual(out["direction"], "forward")
        self.assertEqual(out["starting_age"]["years"], 7)
        self.assertEqual(out["steps"][0]["pillar"]["combined"], "庚辰")
        self.assertEqual(out["steps"][0]["ten_god"], "伤官")


if __name__ == "__main__":
    unittest.main()
