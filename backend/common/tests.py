from decimal import Decimal

from django.test import SimpleTestCase

from common.utils import calculate_distance, distance_miles, has_arrived, within_radius


class GeoUtilsTests(SimpleTestCase):
    def test_same_point_is_zero(self):
        self.assertEqual(calculate_distance(33.45, -112.07, 33.45, -112.07), 0)

    def test_one_degree_of_latitude(self):
        self.assertAlmostEqual(distance_miles(33.0, -112.07, 34.0, -112.07), 69.09, places=1)

    def test_phoenix_to_tucson(self):
        miles = distance_miles(33.4484, -112.0740, 32.2226, -110.9747)

        self.assertGreater(miles, 100)
        self.assertLess(miles, 110)

    def test_accepts_decimal_coordinates(self):
        self.assertAlmostEqual(
            calculate_distance(Decimal("33.450000"), Decimal("-112.070000"), 33.451, -112.07),
            111.2,
            places=0,
        )

    def test_radius_boundary_is_inclusive(self):
        edge = distance_miles(33.45, -112.07, 33.55, -112.07)

        self.assertTrue(within_radius(33.45, -112.07, 33.55, -112.07, edge))
        self.assertFalse(within_radius(33.45, -112.07, 33.55, -112.07, edge - 0.01))

    def test_arrival_needs_target_coordinates(self):
        self.assertTrue(has_arrived(33.45, -112.07, 33.4505, -112.07, 150))
        self.assertFalse(has_arrived(33.45, -112.07, 33.46, -112.07, 150))
        self.assertFalse(has_arrived(None, None, 33.45, -112.07, 150))
