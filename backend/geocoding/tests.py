import hashlib

import requests
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework.test import APIClient
from unittest.mock import MagicMock, patch

from accounts.models import User
from common.testing import DictGeocodeSource, PARIS_CENTER
from common.utils import Coordinates
from services.geocoding import (
	GeocodeResolver,
	GeocodeUnavailableError,
	InMemoryGeocodeCache,
	ModelGeocodeCache,
	NominatimGeocoder,
	address_hash,
)
from .models import GeocodeCacheEntry


class AddressHashTests(SimpleTestCase):
	def test_normalized_before_hashing(self):
		self.assertEqual(address_hash('  12 Rue X '), address_hash('12 RUE x'))

	def test_is_sha256_of_normalized_address(self):
		expected = hashlib.sha256('12 rue x'.encode('utf-8')).hexdigest()
		self.assertEqual(address_hash('12 Rue X'), expected)


class GeocodeResolverTests(SimpleTestCase):
	def setUp(self):
		self.source = DictGeocodeSource({'Hotel de Ville': PARIS_CENTER})
		self.cache = InMemoryGeocodeCache()
		self.resolver = GeocodeResolver(cache=self.cache, source=self.source)

	def test_miss_then_hit(self):
		self.assertEqual(self.resolver.resolve('Hotel de Ville'), PARIS_CENTER)
		self.assertEqual(self.resolver.resolve('  hotel DE ville'), PARIS_CENTER)

		self.assertEqual(len(self.source.lookups), 1)
		self.assertEqual(len(self.cache), 1)

	def test_blank_address(self):
		self.assertIsNone(self.resolver.resolve('   '))
		self.assertIsNone(self.resolver.resolve(None))
		self.assertEqual(self.source.lookups, [])

	def test_unknown_address_is_not_cached(self):
		self.assertIsNone(self.resolver.resolve('Atlantis'))
		self.assertIsNone(self.resolver.resolve('Atlantis'))

		self.assertEqual(len(self.source.lookups), 2)
		self.assertEqual(len(self.cache), 0)

	def test_unavailable_source_degrades_to_none(self):
		source = MagicMock()
		source.lookup.side_effect = GeocodeUnavailableError('timeout')
		resolver = GeocodeResolver(cache=self.cache, source=source)

		self.assertIsNone(resolver.resolve('Hotel de Ville'))
		self.assertEqual(len(self.cache), 0)


class ModelGeocodeCacheTests(TestCase):
	def test_put_is_idempotent(self):
		cache = ModelGeocodeCache()
		key = address_hash('Hotel de Ville')

		cache.put(key, 'Hotel de Ville', PARIS_CENTER)
		cache.put(key, 'hotel de ville', PARIS_CENTER)

		self.assertEqual(GeocodeCacheEntry.objects.count(), 1)
		self.assertEqual(cache.get(key), PARIS_CENTER)

	def test_get_missing(self):
		self.assertIsNone(ModelGeocodeCache().get(address_hash('nowhere')))

	def test_read_error_is_a_miss(self):
		key = address_hash('Hotel de Ville')
		with patch.object(GeocodeCacheEntry.objects, 'filter', side_effect=DatabaseError('down')):
			self.assertIsNone(ModelGeocodeCache().get(key))

	def test_resolver_survives_cache_read_error(self):
		source = DictGeocodeSource({'Hotel de Ville': PARIS_CENTER})
		resolver = GeocodeResolver(cache=ModelGeocodeCache(), source=source)

		with patch.object(GeocodeCacheEntry.objects, 'filter', side_effect=DatabaseError('down')):
			self.assertEqual(resolver.resolve('Hotel de Ville'), PARIS_CENTER)

		self.assertEqual(source.lookups, ['Hotel de Ville'])


class NominatimGeocoderTests(SimpleTestCase):
	def geocoder(self, response=None, error=None):
		session = MagicMock()
		if error is not None:
			session.get.side_effect = error
		else:
			session.get.return_value = response
		return NominatimGeocoder(session=session, user_agent='Tests/1.0', timeout=2), session

	def response(self, payload):
		response = MagicMock()
		response.json.return_value = payload
		return response

	def test_parses_first_result(self):
		geocoder, session = self.geocoder(self.response([{'lat': '48.8566', 'lon': '2.3522'}]))

		coords = geocoder.lookup('Hotel de Ville')

		self.assertEqual(coords, Coordinates(48.8566, 2.3522))
		_, kwargs = session.get.call_args
		self.assertEqual(kwargs['params'], {'q': 'Hotel de Ville', 'format': 'json', 'limit': 1})
		self.assertEqual(kwargs['headers']['User-Agent'], 'Tests/1.0')
		self.assertEqual(kwargs['timeout'], 2)

	def test_empty_result(self):
		geocoder, _ = self.geocoder(self.response([]))
		self.assertIsNone(geocoder.lookup('Atlantis'))

	def test_network_error(self):
		geocoder, _ = self.geocoder(error=requests.Timeout('slow'))
		with self.assertRaises(GeocodeUnavailableError):
			geocoder.lookup('Hotel de Ville')

	def test_http_error(self):
		response = self.response([])
		response.raise_for_status.side_effect = requests.HTTPError('503')
		geocoder, _ = self.geocoder(response)
		with self.assertRaises(GeocodeUnavailableError):
			geocoder.lookup('Hotel de Ville')

	def test_malformed_payload(self):
		geocoder, _ = self.geocoder(self.response([{'display_name': 'no coordinates'}]))
		with self.assertRaises(GeocodeUnavailableError):
			geocoder.lookup('Hotel de Ville')


class GeocodeApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=User.objects.create_user(username='guest', password='x'))
		resolver = GeocodeResolver(cache=InMemoryGeocodeCache(), source=DictGeocodeSource({'Hotel de Ville': PARIS_CENTER}))
		patcher = patch('geocoding.views.build_geocode_resolver', return_value=resolver)
		patcher.start()
		self.addCleanup(patcher.stop)

	def test_resolves_address(self):
		response = self.client.post(reverse('geocoding:geocode'), {'address': 'Hotel de Ville'}, format='json')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data, {'lat': 48.8566, 'lng': 2.3522})

	def test_blank_address(self):
		response = self.client.post(reverse('geocoding:geocode'), {'address': ''}, format='json')
		self.assertEqual(response.status_code, 400)

	def test_unresolvable_address(self):
		response = self.client.post(reverse('geocoding:geocode'), {'address': 'Atlantis'}, format='json')
		self.assertEqual(response.status_code, 404)
