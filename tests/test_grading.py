import unittest
from decimal import Decimal

from gradecore.core.distribution import ComponentScoreSet, GradeSystem, MarkDistribution, RoundingMethod
from gradecore.core.errors import ScoreIntegrityError
from gradecore.core.grades import (
    GradeStatus,
    apply_rounding,
    compute_grade,
    grace_needed,
    to_grade_point,
    to_letter_grade,
)
from gradecore.core.validator import validate


def _theory_practical(**overrides):
    values = dict(
        class_id="class-10a",
        academic_year="2024-2025",
        theory_marks=70,
        practical_marks=30,
        theory_weightage=70,
        practical_weightage=30,
        passing_percentage=35,
        rounding_method=RoundingMethod.ROUND,
    )
    values.update(overrides)
    return validate(MarkDistribution(**values))


class WeightedCalculationTests(unittest.TestCase):
    def test_passing_student(self):
        result = compute_grade(_theory_practical(), ComponentScoreSet(theory=49, practical=18))
        self.assertAlmostEqual(result.raw_weighted_percentage, 67.0)
        self.assertEqual(result.rounded_percentage, 67)
        self.assertTrue(result.passed)
        self.assertEqual(result.letter_grade, "B+")
        self.assertEqual(result.grade_point, 8)
        self.assertFalse(result.grace_applied)
        self.assertEqual(result.missing_components, ())

    def test_failing_student(self):
        result = compute_grade(_theory_practical(), ComponentScoreSet(theory=20, practical=5))
        self.assertEqual(result.rounded_percentage, 25)
        self.assertFalse(result.passed)
        self.assertEqual(result.letter_grade, "F")
        self.assertEqual(result.status, GradeStatus.FAIL)

    def test_components_normalized_before_weighting(self):
        distribution = _theory_practical(theory_weightage=50, practical_weightage=50)
        result = compute_grade(distribution, ComponentScoreSet(theory=35, practical=30))
        self.assertAlmostEqual(result.raw_weighted_percentage, 75.0)

    def test_full_marks_reach_exactly_100(self):
        distribution = validate(
            MarkDistribution(
                class_id="c",
                academic_year="2024-2025",
                theory_marks=37,
                practical_marks=41,
                internal_marks=22,
                theory_weightage=33.33,
                practical_weightage=33.33,
                internal_weightage=33.34,
            )
        )
        result = compute_grade(distribution, ComponentScoreSet(theory=37, practical=41, internal=22))
        self.assertAlmostEqual(result.raw_weighted_percentage, 100.0, places=9)
        self.assertEqual(result.rounded_percentage, 100)
        self.assertEqual(result.letter_grade, "A+")

    def test_full_marks_under_ceil_stay_at_100(self):
        distribution = validate(
            MarkDistribution(
                class_id="c",
                academic_year="2024-2025",
                theory_marks=10,
                practical_marks=10,
                internal_marks=10,
                theory_weightage=33.33,
                practical_weightage=33.33,
                internal_weightage=33.34,
                rounding_method=RoundingMethod.CEIL,
            )
        )
        full = compute_grade(distribution, ComponentScoreSet(theory=10, practical=10, internal=10))
        self.assertEqual(full.rounded_percentage, 100)
        self.assertEqual(full.final_percentage, 100)

    def test_decimal_scores(self):
        result = compute_grade(_theory_practical(), ComponentScoreSet(theory=Decimal("49"), practical=Decimal("18.0")))
        self.assertEqual(result.rounded_percentage, 67)
        self.assertAlmostEqual(result.total_obtained, 67.0)

    def test_fractional_scores(self):
        result = compute_grade(_theory_practical(), ComponentScoreSet(theory=48.5, practical=18))
        self.assertAlmostEqual(result.raw_weighted_percentage, 66.5)
        self.assertEqual(result.rounded_percentage, 67)
        self.assertAlmostEqual(result.total_obtained, 66.5)
        self.assertEqual(result.total_possible, 100)


class UnweightedCalculationTests(unittest.TestCase):
    def test_plain_percentage_of_total(self):
        distribution = _theory_practical(
            theory_marks=60, practical_marks=40, theory_weightage=0, practical_weightage=0
        )
        self.assertFalse(distribution.weighted)
        result = compute_grade(distribution, ComponentScoreSet(theory=30, practical=10))
        self.assertAlmostEqual(result.raw_weighted_percentage, 40.0)
        self.assertEqual(result.letter_grade, "C")

    def test_matches_obtained_over_total(self):
        distribution = _theory_practical(
            theory_marks=80, practical_marks=45, theory_weightage=0, practical_weightage=0
        )
        result = compute_grade(distribution, ComponentScoreSet(theory=61, practical=27.5))
        self.assertAlmostEqual(result.raw_weighted_percentage, (61 + 27.5) / 125 * 100)


class RoundingTests(unittest.TestCase):
    def test_round_ties_away_from_zero(self):
        self.assertEqual(apply_rounding(66.5, RoundingMethod.ROUND), 67)
        self.assertEqual(apply_rounding(64.5, RoundingMethod.ROUND), 65)
        self.assertEqual(apply_rounding(66.49, RoundingMethod.ROUND), 66)
        self.assertEqual(apply_rounding(-2.5, RoundingMethod.ROUND), -3)

    def test_ceil_and_floor(self):
        self.assertEqual(apply_rounding(66.1, RoundingMethod.CEIL), 67)
        self.assertEqual(apply_rounding(66.9, RoundingMethod.FLOOR), 66)

    def test_floor_and_truncate_differ_for_negatives(self):
        self.assertEqual(apply_rounding(-2.5, RoundingMethod.FLOOR), -3)
        self.assertEqual(apply_rounding(-2.5, RoundingMethod.TRUNCATE), -2)
        self.assertEqual(apply_rounding(2.5, RoundingMethod.TRUNCATE), 2)

    def test_float_noise_does_not_move_ceil(self):
        self.assertEqual(apply_rounding(49.00000000000001, RoundingMethod.CEIL), 49)
        self.assertEqual(apply_rounding(48.99999999999999, RoundingMethod.FLOOR), 49)

    def test_idempotent_on_integers(self):
        for method in RoundingMethod:
            for value in (0, 35, 67, 100):
                once = apply_rounding(value, method)
                self.assertEqual(apply_rounding(once, method), once)

    def test_method_from_distribution(self):
        distribution = _theory_practical(rounding_method="ceil")
        result = compute_grade(distribution, ComponentScoreSet(theory=48.2, practical=18))
        self.assertEqual(result.rounded_percentage, 67)


class GraceMarksTests(unittest.TestCase):
    def test_grace_bridges_shortfall(self):
        distribution = _theory_practical(allow_grace_marks=True, grace_marks_limit=5)
        result = compute_grade(distribution, ComponentScoreSet(theory=23, practical=8))
        self.assertEqual(result.rounded_percentage, 31)
        self.assertTrue(result.grace_applied)
        self.assertAlmostEqual(result.grace_amount, 4)
        self.assertAlmostEqual(result.final_percentage, 35)
        self.assertTrue(result.passed)
        self.assertEqual(result.letter_grade, "D")

    def test_shortfall_equal_to_limit(self):
        distribution = _theory_practical(allow_grace_marks=True, grace_marks_limit=5)
        result = compute_grade(distribution, ComponentScoreSet(theory=21, practical=9))
        self.assertTrue(result.grace_applied)
        self.assertAlmostEqual(result.grace_amount, 5)

    def test_shortfall_above_limit(self):
        distribution = _theory_practical(allow_grace_marks=True, grace_marks_limit=5)
        result = compute_grade(distribution, ComponentScoreSet(theory=20, practical=9))
        self.assertFalse(result.grace_applied)
        self.assertEqual(result.grace_amount, 0)
        self.assertFalse(result.passed)

    def test_no_grace_when_already_passing(self):
        distribution = _theory_practical(allow_grace_marks=True, grace_marks_limit=5)
        result = compute_grade(distribution, ComponentScoreSet(theory=27, practical=8))
        self.assertEqual(result.rounded_percentage, 35)
        self.assertFalse(result.grace_applied)

    def test_limit_ignored_when_grace_disallowed(self):
        distribution = _theory_practical(allow_grace_marks=False, grace_marks_limit=5)
        result = compute_grade(distribution, ComponentScoreSet(theory=23, practical=8))
        self.assertFalse(result.grace_applied)
        self.assertFalse(result.passed)

    def test_grace_needed_window(self):
        self.assertEqual(grace_needed(30, 35, 5), 5)
        self.assertEqual(grace_needed(29, 35, 5), 0)
        self.assertEqual(grace_needed(35, 35, 5), 0)
        self.assertEqual(grace_needed(40, 35, 5), 0)
        self.assertEqual(grace_needed(34, 35, 0), 0)


class LetterGradeTests(unittest.TestCase):
    def test_bands(self):
        self.assertEqual(to_letter_grade(95, 35), "A+")
        self.assertEqual(to_letter_grade(89.99, 35), "A")
        self.assertEqual(to_letter_grade(70, 35), "B+")
        self.assertEqual(to_letter_grade(60, 35), "B")
        self.assertEqual(to_letter_grade(55, 35), "C+")
        self.assertEqual(to_letter_grade(40, 35), "C")

    def test_d_depends_on_passing_percentage(self):
        self.assertEqual(to_letter_grade(36, 35), "D")
        self.assertEqual(to_letter_grade(36, 38), "F")
        self.assertEqual(to_letter_grade(25, 20), "D")

    def test_grade_points(self):
        self.assertEqual(to_grade_point("a+"), 10)
        self.assertEqual(to_grade_point("D"), 4)
        self.assertEqual(to_grade_point("F"), 0)
        with self.assertRaises(ValueError):
            to_grade_point("S")


class MissingComponentTests(unittest.TestCase):
    def test_missing_component_counts_as_zero(self):
        result = compute_grade(_theory_practical(), ComponentScoreSet(theory=49))
        self.assertEqual(result.missing_components, ("practical",))
        self.assertTrue(result.is_incomplete)
        self.assertAlmostEqual(result.raw_weighted_percentage, 49.0)
        self.assertTrue(result.passed)
        self.assertEqual(result.status, GradeStatus.PASS)

    def test_zero_is_not_missing(self):
        result = compute_grade(_theory_practical(), ComponentScoreSet(theory=49, practical=0))
        self.assertEqual(result.missing_components, ())

    def test_nothing_recorded_is_absent(self):
        result = compute_grade(_theory_practical(), ComponentScoreSet())
        self.assertEqual(result.missing_components, ("theory", "practical"))
        self.assertEqual(result.status, GradeStatus.ABSENT)
        self.assertEqual(result.letter_grade, "F")

    def test_absent_with_zero_pass_mark_still_passes(self):
        result = compute_grade(_theory_practical(passing_percentage=0), ComponentScoreSet())
        self.assertTrue(result.passed)
        self.assertEqual(result.status, GradeStatus.ABSENT)
        self.assertEqual(result.letter_grade, "D")


class ScoreIntegrityTests(unittest.TestCase):
    def test_score_above_maximum(self):
        with self.assertRaises(ScoreIntegrityError) as ctx:
            compute_grade(_theory_practical(), ComponentScoreSet(theory=71, practical=18))
        self.assertEqual(ctx.exception.component, "theory")
        self.assertEqual(ctx.exception.maximum, 70)

    def test_negative_score(self):
        with self.assertRaises(ScoreIntegrityError):
            compute_grade(_theory_practical(), ComponentScoreSet(theory=-1, practical=18))

    def test_score_for_unused_component(self):
        with self.assertRaises(ScoreIntegrityError) as ctx:
            compute_grade(_theory_practical(), ComponentScoreSet(theory=40, practical=18, project=5))
        self.assertEqual(ctx.exception.component, "project")

    def test_integer_too_large_for_float(self):
        with self.assertRaises(ScoreIntegrityError) as ctx:
            compute_grade(_theory_practical(), ComponentScoreSet(theory=10**400, practical=18))
        self.assertEqual(ctx.exception.component, "theory")

    def test_non_numeric_and_non_finite_scores(self):
        for bad in ("abc", float("nan"), float("inf"), Decimal("Infinity"), True):
            with self.subTest(score=bad):
                with self.assertRaises(ScoreIntegrityError):
                    compute_grade(_theory_practical(), ComponentScoreSet(theory=bad, practical=18))

    def test_unvalidated_distribution_rejected(self):
        raw = MarkDistribution(class_id="c", academic_year="2024-2025", theory_marks=100, theory_weightage=100)
        with self.assertRaises(TypeError):
            compute_grade(raw, ComponentScoreSet(theory=50))


class GradeSystemViewTests(unittest.TestCase):
    def test_reported_grade_follows_grade_system(self):
        scores = ComponentScoreSet(theory=49, practical=18)
        percentage = compute_grade(_theory_practical(), scores)
        gpa = compute_grade(_theory_practical(grade_system=GradeSystem.GPA), scores)
        letter = compute_grade(_theory_practical(grade_system="letter"), scores)
        self.assertEqual(percentage.reported_grade, 67)
        self.assertEqual(gpa.reported_grade, 8)
        self.assertEqual(letter.reported_grade, "B+")


if __name__ == "__main__":
    unittest.main()
