from django.test import SimpleTestCase

from common.testing import LOUVRE_AREA, PARIS_CENTER
from common.utils import Coordinates, distance_km, is_detour_acceptable


class DistanceTests(SimpleTestCase):
	def test_symmetric(self):
		pairs = [
			(PARIS_CENTER, LOUVRE_AREA),
			(Coordinates(-33.8688, 151.2093), Coordinates(51.5074, -0.1278)),
			(Coordinates(0, 179.5), Coordinates(0, -179.5)),
		]
		for a, b in pairs:
			self.assertEqual(distance_km(a, b), distance_km(b, a))

	def test_zero_for_same_point(self):
		self.assertEqual(distance_km(PARIS_CENTER, PARIS_CENTER), 0)

	def test_known_pair_in_paris(self):
		self.assertAlmostEqual(distance_km(PARIS_CENTER, LOUVRE_AREA), 1.16, delta=0.05)

	def test_one_degree_of_latitude(self):
		self.assertAlmostEqual(distance_km(Coordinates(0, 0), Coordinates(1, 0)), 111.19, delta=0.01)

	def test_antipodes_do_not_blow_up(self):
		self.assertAlmostEqual(distance_km(Coordinates(0, 0), Coordinates(0, 180)), 20015.09, delta=0.1)


class DetourTests(SimpleTestCase):
	start = Coordinates(48.8566, 2.3522)
	venue = Coordinates(48.8566, 2.5000)

	def test_pickup_on_the_way(self):
		self.assertTrue(is_detour_acceptable(self.start, Coordinates(48.8600, 2.4200), self.venue))

	def test_pickup_behind_the_driver(self):
		self.assertFalse(is_detour_acceptable(self.start, Coordinates(48.8566, 2.2500), self.venue))

	def test_custom_ratio(self):
		pickup = Coordinates(48.8900, 2.4261)
		self.assertFalse(is_detour_acceptable(self.start, pickup, self.venue, max_ratio=1.0))
		self.assertTrue(is_detour_acceptable(self.start, pickup, self.venue, max_ratio=2.0))
