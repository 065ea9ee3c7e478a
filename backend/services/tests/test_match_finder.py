from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from accounts.models import User
from common.testing import LOUVRE_AREA, PARIS_CENTER, build_test_match_finder
from common.utils import Coordinates
from parties.models import Party
from rides.models import RideEntry

VENUE = Coordinates(48.8566, 2.5000)

ADDRESS_BOOK = {
	'Hotel de Ville': PARIS_CENTER,
	'Louvre': LOUVRE_AREA,
	'Far north': Coordinates(48.8566 + 0.36, 2.3522),
	'On the way': Coordinates(48.8600, 2.4200),
	'Behind': Coordinates(48.8566, 2.2500),
	'Venue': VENUE,
}


class MatchFinderTests(TestCase):
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='x')
		self.party = Party.objects.create(name='Rooftop', address='Venue', organizer=self.driver)
		self.guests = [User.objects.create_user(username=f'guest_{i}', password='x') for i in range(4)]

	def offer(self, mode=RideEntry.PERSONAL_VEHICLE, location='Hotel de Ville'):
		return RideEntry.objects.create(
			party=self.party, kind=RideEntry.OFFER, driver_mode=mode, owner=self.driver,
			departure_location=location, capacity=3,
		)

	def request(self, guest, location, **extra):
		return RideEntry.objects.create(
			party=self.party, kind=RideEntry.REQUEST, owner=guest, departure_location=location, **extra
		)

	def test_basic_match(self):
		request = self.request(self.guests[0], 'Louvre')

		matches = build_test_match_finder(ADDRESS_BOOK).find_nearby(self.offer(), [request])

		self.assertEqual(len(matches), 1)
		self.assertEqual(matches[0].request, request)
		self.assertAlmostEqual(matches[0].distance_km, 1.16, delta=0.05)
		self.assertIsNone(matches[0].ride_share_compatible)

	def test_out_of_range_request_is_excluded(self):
		near = self.request(self.guests[0], 'Louvre')
		far = self.request(self.guests[1], 'Far north')

		matches = build_test_match_finder(ADDRESS_BOOK).find_nearby(self.offer(), [near, far])

		self.assertEqual([m.request for m in matches], [near])

	def test_sorted_by_distance_then_creation(self):
		later = self.request(self.guests[0], 'Louvre')
		earlier = self.request(self.guests[1], 'Louvre')
		RideEntry.objects.filter(pk=earlier.pk).update(created_at=later.created_at - timedelta(minutes=5))
		earlier.refresh_from_db()
		closest = self.request(self.guests[2], 'Hotel de Ville')

		matches = build_test_match_finder(ADDRESS_BOOK).find_nearby(self.offer(), [later, earlier, closest])

		self.assertEqual([m.request for m in matches], [closest, earlier, later])

	def test_unresolvable_request_is_dropped(self):
		good = self.request(self.guests[0], 'Louvre')
		unknown = self.request(self.guests[1], 'Atlantis')

		matches = build_test_match_finder(ADDRESS_BOOK).find_nearby(self.offer(), [unknown, good])

		self.assertEqual([m.request for m in matches], [good])

	def test_unresolvable_offer_yields_nothing(self):
		request = self.request(self.guests[0], 'Louvre')

		matches = build_test_match_finder(ADDRESS_BOOK).find_nearby(self.offer(location='Atlantis'), [request])

		self.assertEqual(matches, [])

	def test_skips_inactive_and_own_requests(self):
		cancelled = self.request(self.guests[0], 'Louvre', status=RideEntry.CANCELLED)
		own = self.request(self.driver, 'Louvre')

		matches = build_test_match_finder(ADDRESS_BOOK).find_nearby(self.offer(), [cancelled, own])

		self.assertEqual(matches, [])

	def test_ride_share_uses_detour_to_venue(self):
		on_the_way = self.request(self.guests[0], 'On the way')
		behind = self.request(self.guests[1], 'Behind')
		finder = build_test_match_finder(ADDRESS_BOOK, venues={str(self.party.id): 'Venue'})

		matches = finder.find_nearby(self.offer(mode=RideEntry.COMMERCIAL_RIDE_SHARE), [on_the_way, behind])

		self.assertEqual([m.request for m in matches], [on_the_way])
		self.assertTrue(matches[0].ride_share_compatible)

	def test_ride_share_falls_back_to_radius_without_venue(self):
		behind = self.request(self.guests[1], 'Behind')
		far = self.request(self.guests[2], 'Far north')
		finder = build_test_match_finder(ADDRESS_BOOK, venues={})

		matches = finder.find_nearby(self.offer(mode=RideEntry.COMMERCIAL_RIDE_SHARE), [behind, far])

		self.assertEqual([m.request for m in matches], [behind])
		self.assertIsNone(matches[0].ride_share_compatible)

	def test_custom_radius(self):
		request = self.request(self.guests[0], 'Louvre')

		matches = build_test_match_finder(ADDRESS_BOOK, radius_km=1.0).find_nearby(self.offer(), [request])

		self.assertEqual(matches, [])

	def test_addresses_resolved_once(self):
		requests = [self.request(g, 'Louvre') for g in self.guests]
		finder = build_test_match_finder(ADDRESS_BOOK)

		finder.find_nearby(self.offer(), requests)
		finder.find_nearby(self.offer(), requests)

		self.assertEqual(sorted(finder.resolver.source.lookups), ['Hotel de Ville', 'Louvre'])
