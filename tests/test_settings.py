import unittest

from simulation.settings import (
    AnalysisSettings,
    ConfigurationError,
    SimulatorSettings,
    validate_photon_count,
    validate_speed,
    validate_threshold,
)


class TestSimulatorSettings(unittest.TestCase):
    def test_defaults_are_valid(self):
        settings = SimulatorSettings().validated()
        self.assertEqual(settings.photon_count, 1024)
        self.assertEqual(settings.speed, "fast")
        self.assertEqual(settings.interval_ms, 5)
        self.assertEqual(settings.target_key_bits, 256)

    def test_numeric_strings_are_accepted(self):
        self.assertEqual(validate_photon_count("720"), 720)
        self.assertEqual(validate_speed(" Slow "), "slow")

    def test_rejects_bad_photon_counts(self):
        for value in ("lots", None, 100, 12.5, True):
            with self.assertRaises(ConfigurationError):
                SimulatorSettings(photon_count=value).validated()

    def test_rejects_unknown_speed(self):
        with self.assertRaises(ConfigurationError):
            SimulatorSettings(speed="warp").validated()

    def test_rejects_non_positive_target(self):
        with self.assertRaises(ConfigurationError):
            SimulatorSettings(target_key_bits=0).validated()


class TestAnalysisSettings(unittest.TestCase):
    def test_defaults_are_valid(self):
        settings = AnalysisSettings().validated()
        self.assertEqual(settings.photon_count, 256)
        self.assertEqual(settings.sample_size, 32)
        self.assertEqual(settings.threshold_percent, 11.0)

    def test_720_is_not_an_analysis_choice(self):
        with self.assertRaises(ConfigurationError):
            AnalysisSettings(photon_count=720).validated()

    def test_threshold_range(self):
        self.assertEqual(validate_threshold("12.5"), 12.5)
        for value in (-1, 100.5, "abc", float("nan")):
            with self.assertRaises(ConfigurationError):
                validate_threshold(value)

    def test_sample_size_range(self):
        for value in (4, 129, "x"):
            with self.assertRaises(ConfigurationError):
                AnalysisSettings(sample_size=value).validated()

    def test_configuration_error_is_a_value_error(self):
        self.assertTrue(issubclass(ConfigurationError, ValueError))


if __name__ == '__main__':
    unittest.main()
