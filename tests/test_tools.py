import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import MathTools, DateTools, WeightConverter, estimate_one_rep_max


class MathToolsTestCase(unittest.TestCase):
    def test_constants(self) -> None:
        self.assertEqual(MathTools.BRZYCKI_NUMERATOR, 36.0)
        self.assertEqual(MathTools.BRZYCKI_BASE, 37.0)
        self.assertEqual(MathTools.MAX_ESTIMATE_REPS, 12)

    def test_clamp(self) -> None:
        self.assertEqual(MathTools.clamp(5, 0, 10), 5)
        self.assertEqual(MathTools.clamp(-1, 0, 10), 0)
        self.assertEqual(MathTools.clamp(11, 0, 10), 10)
        with self.assertRaises(ValueError):
            MathTools.clamp(1, 2, 1)

    def test_brzycki_single_rep_is_weight(self) -> None:
        self.assertAlmostEqual(MathTools.brzycki_1rm(100, 1), 100.0)
        self.assertAlmostEqual(estimate_one_rep_max(62.5, 1), 62.5)

    def test_brzycki_values(self) -> None:
        self.assertAlmostEqual(MathTools.brzycki_1rm(100, 5), 100 * 36 / 32)
        self.assertAlmostEqual(MathTools.brzycki_1rm(80, 10), 80 * 36 / 27)

    def test_brzycki_monotonic_in_reps(self) -> None:
        estimates = [MathTools.brzycki_1rm(100, r) for r in range(1, 13)]
        self.assertEqual(estimates, sorted(estimates))

    def test_brzycki_caps_reps(self) -> None:
        self.assertEqual(
            estimate_one_rep_max(100, 20), estimate_one_rep_max(100, 12)
        )
        self.assertEqual(
            estimate_one_rep_max(100, 50), estimate_one_rep_max(100, 12)
        )

    def test_brzycki_rejects_negative_reps(self) -> None:
        with self.assertRaises(ValueError):
            MathTools.brzycki_1rm(100, -1)

    def test_volume(self) -> None:
        sets = [(10, 100.0), (5, 150.0)]
        self.assertEqual(MathTools.volume(sets), 10 * 100.0 + 5 * 150.0)
        self.assertEqual(MathTools.volume([]), 0.0)

    def test_mean(self) -> None:
        self.assertEqual(MathTools.mean([]), 0.0)
        self.assertAlmostEqual(MathTools.mean([1, 2, 3, 4]), 2.5)
        self.assertAlmostEqual(MathTools.mean(x for x in (70, 80)), 75.0)

    def test_saturate(self) -> None:
        self.assertEqual(MathTools.saturate(2, 4), 0.5)
        self.assertEqual(MathTools.saturate(9, 4), 1.0)
        self.assertEqual(MathTools.saturate(0, 5), 0.0)
        with self.assertRaises(ValueError):
            MathTools.saturate(1, 0)


class WeightConverterTestCase(unittest.TestCase):
    def test_conversion(self) -> None:
        self.assertAlmostEqual(WeightConverter.kg_to_lb(100), 220.46)
        self.assertAlmostEqual(WeightConverter.lb_to_kg(220.46), 100.0)

    def test_format_volume(self) -> None:
        self.assertEqual(WeightConverter.format_volume(5000), "5.0k kg")
        self.assertEqual(WeightConverter.format_volume(999.6), "1000 kg")
        self.assertEqual(WeightConverter.format_volume(420.2), "420 kg")
        self.assertEqual(WeightConverter.format_volume(5000, "lb"), "11.0k lb")
        with self.assertRaises(ValueError):
            WeightConverter.format_volume(10, "st")


class DateToolsTestCase(unittest.TestCase):
    def test_window_bounds(self) -> None:
        now = datetime.datetime(2024, 3, 15, 13, 30)
        start, end = DateTools.window_bounds(14, now)
        self.assertEqual(start, datetime.datetime(2024, 3, 2))
        self.assertEqual(end, datetime.datetime(2024, 3, 16))
        start, _ = DateTools.window_bounds(7, now)
        self.assertEqual(start, datetime.datetime(2024, 3, 9))

    def test_unsupported_window(self) -> None:
        with self.assertRaises(ValueError):
            DateTools.window_bounds(30)

    def test_parse_timestamp(self) -> None:
        self.assertEqual(
            DateTools.parse_timestamp("2024-03-15T08:00:00"),
            datetime.datetime(2024, 3, 15, 8, 0),
        )
        aware = DateTools.parse_timestamp("2024-03-15T08:00:00+00:00")
        self.assertIsNone(aware.tzinfo)
        self.assertEqual(DateTools.parse_timestamp("2024-03-15T08:00:00Z"), aware)

    def test_to_iso_normalizes_offsets(self) -> None:
        local = datetime.datetime(2024, 3, 15, 8, 0)
        utc = local.astimezone(datetime.timezone.utc)
        self.assertEqual(DateTools.to_iso(utc), "2024-03-15T08:00:00")
        self.assertEqual(DateTools.to_iso(utc.isoformat()), "2024-03-15T08:00:00")
        self.assertEqual(DateTools.to_iso(local.replace(microsecond=5)), "2024-03-15T08:00:00")

    def test_day_bounds(self) -> None:
        start, end = DateTools.day_bounds(datetime.date(2024, 2, 28))
        self.assertEqual(start, datetime.datetime(2024, 2, 28))
        self.assertEqual(end, datetime.datetime(2024, 2, 29))


if __name__ == "__main__":
    unittest.main()
