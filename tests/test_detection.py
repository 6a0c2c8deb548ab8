import unittest

from simulation.detection import (
    DetectionResult,
    Verdict,
    analyse_events,
    analyse_scenario,
    classify,
    run_detection_analysis,
)
from simulation.photon import generate_photon_event
from simulation.random_source import DIAGONAL, RECTILINEAR, RandomSource
from tests.sources import ForcedBasisSource


class TestClassification(unittest.TestCase):
    def test_threshold_decision(self):
        self.assertIs(classify(15.0, 11.0), Verdict.REJECTED)
        self.assertIs(classify(5.0, 11.0), Verdict.ACCEPTED)
        # Only strictly above the threshold is rejected
        self.assertIs(classify(11.0, 11.0), Verdict.ACCEPTED)

    def test_result_verdict_uses_error_rate(self):
        rejected = DetectionResult(eve_present=True, photons_transmitted=200,
                                   same_basis_cases=100, errors=15, disturbed_count=50,
                                   threshold_percent=11)
        accepted = DetectionResult(eve_present=False, photons_transmitted=200,
                                   same_basis_cases=100, errors=5, disturbed_count=0,
                                   threshold_percent=11)
        self.assertAlmostEqual(rejected.error_rate, 15.0)
        self.assertTrue(rejected.rejected)
        self.assertEqual(rejected.to_dict()["verdict"], "rejected")
        self.assertAlmostEqual(accepted.error_rate, 5.0)
        self.assertFalse(accepted.rejected)
        self.assertAlmostEqual(rejected.disturbance_rate, 25.0)


class TestScenarios(unittest.TestCase):
    def test_zero_photons(self):
        result = analyse_scenario(0, eve_present=True, source=RandomSource(seed=1))
        self.assertEqual(result.photons_transmitted, 0)
        self.assertEqual(result.same_basis_cases, 0)
        self.assertEqual(result.errors, 0)
        self.assertEqual(result.error_rate, 0.0)
        self.assertEqual(result.disturbance_rate, 0.0)
        self.assertEqual(result.bits_compared, 0)
        self.assertIs(result.verdict, Verdict.ACCEPTED)

    def test_clean_channel_has_no_errors(self):
        result = analyse_scenario(4096, eve_present=False, source=RandomSource(seed=7))
        self.assertEqual(result.errors, 0)
        self.assertEqual(result.error_rate, 0.0)
        self.assertEqual(result.disturbed_count, 0)
        self.assertIs(result.verdict, Verdict.ACCEPTED)

    def test_intercept_resend_signature_is_a_quarter(self):
        result = analyse_scenario(20000, eve_present=True, source=RandomSource(seed=42))
        self.assertAlmostEqual(result.error_rate, 25.0, delta=3.0)
        self.assertAlmostEqual(result.disturbance_rate, 50.0, delta=3.0)
        self.assertTrue(result.rejected)

    def test_eve_always_in_wrong_basis(self):
        source = ForcedBasisSource(seed=17, sender_basis=RECTILINEAR, eve_basis=DIAGONAL)
        events = [generate_photon_event(i + 1, True, source) for i in range(20000)]
        result = analyse_events(events, eve_present=True, source=RandomSource(seed=0))

        self.assertEqual(result.disturbed_count, 20000)
        self.assertEqual(result.disturbance_rate, 100.0)
        # Bob's same-basis bit is a coin flip every time Eve chose wrong
        self.assertAlmostEqual(result.error_rate, 50.0, delta=3.0)


class TestSampling(unittest.TestCase):
    def test_sample_is_capped_by_same_basis_cases(self):
        result = analyse_scenario(128, eve_present=True, sample_size=32,
                                  source=RandomSource(seed=12))
        self.assertEqual(result.bits_compared, min(32, result.same_basis_cases))
        self.assertEqual(result.remaining_key_bits,
                         result.same_basis_cases - result.bits_compared)
        self.assertLessEqual(result.sample_errors, result.errors)

    def test_decision_can_use_sample_estimate(self):
        result = analyse_scenario(1024, eve_present=True, sample_size=128,
                                  estimate_from_sample=True, source=RandomSource(seed=31))
        self.assertTrue(result.decided_on_sample)
        self.assertEqual(result.decision_rate, result.sample_error_rate)
        self.assertIs(result.verdict, classify(result.sample_error_rate, result.threshold_percent))

    def test_sample_without_eve_is_clean(self):
        result = analyse_scenario(512, eve_present=False, sample_size=64,
                                  estimate_from_sample=True, source=RandomSource(seed=2))
        self.assertEqual(result.sample_errors, 0)
        self.assertIs(result.verdict, Verdict.ACCEPTED)


class TestReport(unittest.TestCase):
    def test_two_scenarios_side_by_side(self):
        report = run_detection_analysis(1024, sample_size=32, threshold_percent=11,
                                        source=RandomSource(seed=1001))
        self.assertFalse(report.baseline.eve_present)
        self.assertTrue(report.eavesdropped.eve_present)
        self.assertEqual(report.baseline.photons_transmitted, 1024)
        self.assertEqual(report.eavesdropped.photons_transmitted, 1024)
        self.assertIs(report.baseline.verdict, Verdict.ACCEPTED)
        self.assertTrue(report.eavesdropping_detected)
        self.assertGreater(report.error_rate_gap, 11.0)

        data = report.to_dict()
        self.assertEqual([r["scenario"] for r in data["results"]], ["Without Eve", "With Eve"])


if __name__ == '__main__':
    unittest.main()
