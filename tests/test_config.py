import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from settings_schema import SettingsSchema, load_settings, validate_settings


class YamlConfigTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.path = "test_config.yaml"
        if os.path.exists(self.path):
            os.remove(self.path)

    def tearDown(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)

    def test_missing_file_loads_empty(self) -> None:
        self.assertEqual(YamlConfig(self.path).load(), {})
        self.assertEqual(load_settings(self.path), SettingsSchema())

    def test_save_and_load(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({"weight_unit": "kg", "edit_window_days": 14})
        self.assertEqual(cfg.load(), {"edit_window_days": 14, "weight_unit": "kg"})
        settings = load_settings(self.path)
        self.assertEqual(settings.edit_window_days, 14)
        self.assertEqual(settings.default_rest_period, 90)

    def test_non_mapping_rejected(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("- just\n- a list\n")
        with self.assertRaises(ValueError):
            YamlConfig(self.path).load()


class SettingsSchemaTestCase(unittest.TestCase):
    def test_defaults(self) -> None:
        s = SettingsSchema()
        self.assertEqual(s.weight_unit.value, "lbs")
        self.assertEqual(s.distance_unit.value, "meters")
        self.assertEqual(s.undo_history_limit, 120)
        self.assertEqual(s.default_work_duration, 30)
        self.assertEqual(s.default_interval_rest, 30)
        self.assertEqual(s.database_path, "workout.db")

    def test_validation_errors(self) -> None:
        for bad in ({"weight_unit": "stone"}, {"week_start": "someday"},
                    {"default_rest_period": -5}):
            with self.assertRaises(ValueError):
                validate_settings(bad)
        self.assertEqual(validate_settings({"week_start": "saturday"}).first_weekday, 5)


if __name__ == "__main__":
    unittest.main()
