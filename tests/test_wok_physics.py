"""Tests for the wok thermal model and wash trip."""
from __future__ import annotations

import unittest

from config import WokPhysicsConfig
from kitchen import stations
from kitchen_types import RejectionReason, WokPosition, WokState
from tests.helpers import make_engine


class TestHeating(unittest.TestCase):

    def setUp(self):
        self.physics = WokPhysicsConfig()
        self.wok = stations.create_woks(1, self.physics)[1]

    def test_heat_increment_formula(self):
        self.assertAlmostEqual(stations.heat_increment(25.0, 3, self.physics), 25.2 * 1.82)
        self.assertAlmostEqual(stations.heat_increment(25.0, 1, self.physics), 25.2 * 0.78)
        headroom = (420.0 - 222.5) / 395.0
        self.assertAlmostEqual(stations.heat_increment(222.5, 2, self.physics), 25.2 * 1.56 * headroom ** 2)
        self.assertEqual(stations.heat_increment(420.0, 3, self.physics), 0.0)

    def test_six_ticks_on_high_pass_stir_fry_minimum(self):
        self.wok.is_on = True
        for _ in range(5):
            stations.advance_wok(self.wok, self.physics)
        self.assertLess(self.wok.temperature, 180.0)
        stations.advance_wok(self.wok, self.physics)
        self.assertGreaterEqual(self.wok.temperature, 180.0)

    def test_cooling_with_burner_off_stops_at_ambient(self):
        self.wok.temperature = 32.0
        stations.advance_wok(self.wok, self.physics)
        self.assertEqual(self.wok.temperature, 27.0)
        stations.advance_wok(self.wok, self.physics)
        self.assertEqual(self.wok.temperature, 25.0)

    def test_temperature_stays_within_bounds(self):
        self.wok.is_on = True
        for _ in range(600):
            stations.advance_wok(self.wok, self.physics)
            self.assertGreaterEqual(self.wok.temperature, self.physics.ambient)
            self.assertLessEqual(self.wok.temperature, self.physics.max_safe)

    def test_overheating_and_recovery(self):
        self.wok.is_on = True
        self.wok.temperature = 359.0
        self.assertEqual(stations.advance_wok(self.wok, self.physics), WokState.OVERHEATING)
        self.assertEqual(self.wok.resting_state, WokState.CLEAN)
        self.assertIsNone(stations.advance_wok(self.wok, self.physics))

        self.wok.is_on = False
        self.wok.temperature = 362.0
        self.assertEqual(stations.advance_wok(self.wok, self.physics), WokState.CLEAN)
        self.assertEqual(self.wok.state, WokState.CLEAN)

    def test_burn_reported_once(self):
        self.wok.is_on = True
        self.wok.temperature = 399.95
        self.assertEqual(stations.advance_wok(self.wok, self.physics), WokState.BURNED)
        self.assertFalse(self.wok.is_on)
        self.assertIsNone(stations.advance_wok(self.wok, self.physics))
        self.assertEqual(self.wok.state, WokState.BURNED)

    def test_wet_wok_dries_at_threshold(self):
        self.wok.state = WokState.WET
        self.wok.is_on = True
        self.wok.temperature = 170.0
        stations.advance_wok(self.wok, self.physics)
        self.assertEqual(self.wok.state, WokState.CLEAN)

    def test_away_from_burner_is_frozen(self):
        self.wok.is_on = True
        self.wok.position = WokPosition.AT_SINK
        self.assertIsNone(stations.advance_wok(self.wok, self.physics))
        self.assertEqual(self.wok.temperature, 25.0)


class TestWater(unittest.TestCase):

    def setUp(self):
        self.physics = WokPhysicsConfig()
        self.wok = stations.create_woks(1, self.physics)[1]
        self.wok.temperature = 250.0
        stations.fill_water(self.wok, self.physics)

    def test_fill_water_resets_metal(self):
        self.assertTrue(self.wok.has_water)
        self.assertEqual(self.wok.temperature, 25.0)

    def test_boil_needs_dwell_at_boiling_point(self):
        self.wok.is_on = True
        for _ in range(30):
            stations.advance_wok(self.wok, self.physics)
        self.assertEqual(self.wok.water_temperature, 100.0)
        self.assertEqual(self.wok.boil_dwell, 0)
        self.assertFalse(self.wok.is_boiling)

        for _ in range(4):
            stations.advance_wok(self.wok, self.physics)
        self.assertFalse(self.wok.is_boiling)
        stations.advance_wok(self.wok, self.physics)
        self.assertTrue(self.wok.is_boiling)
        # metal does not heat while water is in the wok
        self.assertEqual(self.wok.temperature, 25.0)

    def test_burner_off_resets_boil(self):
        self.wok.is_on = True
        for _ in range(40):
            stations.advance_wok(self.wok, self.physics)
        self.assertTrue(self.wok.is_boiling)
        self.wok.is_on = False
        stations.advance_wok(self.wok, self.physics)
        self.assertFalse(self.wok.is_boiling)
        self.assertEqual(self.wok.boil_dwell, 0)
        self.assertEqual(self.wok.water_temperature, 95.0)


class TestWashTrip(unittest.TestCase):

    def test_wash_trip_timing(self):
        engine = make_engine()
        wok = engine.state.get_wok(2)
        wok.state = WokState.DIRTY
        wok.temperature = 200.0

        result = engine.wash_station(2)
        self.assertTrue(result.success)
        self.assertEqual(wok.position, WokPosition.MOVING_TO_SINK)

        engine.tick()
        self.assertEqual(wok.position, WokPosition.AT_SINK)
        self.assertEqual(wok.state, WokState.WET)
        self.assertEqual(wok.temperature, 25.0)

        engine.tick()
        self.assertEqual(wok.position, WokPosition.AT_SINK)
        engine.tick()
        self.assertEqual(wok.position, WokPosition.MOVING_TO_BURNER)
        engine.tick()
        self.assertEqual(wok.position, WokPosition.AT_BURNER)

    def test_wash_refused_for_clean_or_lit_wok(self):
        engine = make_engine()
        self.assertFalse(engine.wash_station(1).success)
        wok = engine.state.get_wok(1)
        wok.state = WokState.DIRTY
        wok.is_on = True
        result = engine.wash_station(1)
        self.assertFalse(result.success)
        self.assertEqual(result.reason, RejectionReason.STATION_BUSY)

    def test_wet_wok_cannot_take_a_bundle_until_dry(self):
        engine = make_engine()
        wok = engine.state.get_wok(1)
        wok.state = WokState.WET
        order = engine.add_order("Garlic Shrimp")
        result = engine.assign_bundle(order.id, "shrimp_main", "WOK", 1)
        self.assertFalse(result.success)
        self.assertEqual(result.reason, RejectionReason.STATION_NOT_READY)


if __name__ == "__main__":
    unittest.main()
