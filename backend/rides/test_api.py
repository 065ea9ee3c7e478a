import uuid

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient
from unittest.mock import patch

from accounts.models import User
from common.testing import LOUVRE_AREA, PARIS_CENTER, RecordingNotifier, build_test_match_finder
from parties.models import Party
from services.ride_management import RideLedger
from .models import RideEntry


class RideApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.driver = User.objects.create_user(username='driver', password='pass1234')
		self.guest = User.objects.create_user(username='guest', password='pass1234')
		self.party = Party.objects.create(name='Rooftop', address='Venue', organizer=self.driver)

		self.notifier = RecordingNotifier()
		match_finder = build_test_match_finder({'Hotel de Ville': PARIS_CENTER, 'Louvre': LOUVRE_AREA})

		patcher = patch(
			'rides.views.build_ledger',
			side_effect=lambda party_id: RideLedger(party_id, notifier=self.notifier, match_finder=match_finder),
		)
		patcher.start()
		self.addCleanup(patcher.stop)

	def url(self, name, **kwargs):
		return reverse(f'rides:{name}', kwargs={'party_id': self.party.id, **kwargs})

	def post_as(self, user, url, data=None):
		self.client.force_authenticate(user=user)
		return self.client.post(url, data or {}, format='json')

	def create_offer(self, capacity=2):
		response = self.post_as(self.driver, self.url('create-offer'), {
			'mode': RideEntry.PERSONAL_VEHICLE,
			'location': 'Hotel de Ville',
			'capacity': capacity,
		})
		self.assertEqual(response.status_code, 201)
		return response.data['offer']['id']

	def create_request(self, location='Louvre'):
		response = self.post_as(self.guest, self.url('create-request'), {'location': location})
		self.assertEqual(response.status_code, 201)
		return response.data['id']

	def test_requires_authentication(self):
		response = self.client.get(self.url('list-rides'))
		self.assertEqual(response.status_code, 401)

	def test_unknown_party_is_404(self):
		self.client.force_authenticate(user=self.guest)
		response = self.client.get(reverse('rides:list-rides', kwargs={'party_id': uuid.uuid4()}))
		self.assertEqual(response.status_code, 404)

	def test_create_offer_lists_matches(self):
		request_id = self.create_request()

		response = self.post_as(self.driver, self.url('create-offer'), {
			'mode': RideEntry.PERSONAL_VEHICLE,
			'location': 'Hotel de Ville',
			'capacity': 3,
		})

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['offer']['seats_left'], 3)
		self.assertEqual(response.data['offer']['owner']['username'], 'driver')
		self.assertEqual([m['request']['id'] for m in response.data['matches']], [request_id])

	def test_create_offer_with_zero_capacity(self):
		response = self.post_as(self.driver, self.url('create-offer'), {
			'mode': RideEntry.PERSONAL_VEHICLE,
			'location': 'Hotel de Ville',
			'capacity': 0,
		})

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['code'], 'invalid_capacity')

	def test_create_offer_with_unknown_mode(self):
		response = self.post_as(self.driver, self.url('create-offer'), {
			'mode': 'helicopter',
			'location': 'Hotel de Ville',
			'capacity': 2,
		})
		self.assertEqual(response.status_code, 400)

	def test_duplicate_request_returns_existing(self):
		request_id = self.create_request()

		response = self.post_as(self.guest, self.url('create-request'), {'location': 'Louvre'})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['id'], request_id)
		self.assertTrue(response.data['already_exists'])

	def test_board_lists_active_entries(self):
		self.create_offer()
		self.create_request()

		self.client.force_authenticate(user=self.guest)
		response = self.client.get(self.url('list-rides'))

		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data['offers']), 1)
		self.assertEqual(len(response.data['requests']), 1)

	def test_pickup_and_full_offer(self):
		offer_id = self.create_offer(capacity=1)
		request_id = self.create_request()
		other = User.objects.create_user(username='other', password='pass1234')
		self.client.force_authenticate(user=other)
		other_request_id = self.client.post(
			self.url('create-request'), {'location': 'Louvre'}, format='json'
		).data['id']

		response = self.post_as(self.driver, self.url('pickup-request', offer_id=offer_id, request_id=request_id))
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['seats_left'], 0)

		response = self.post_as(self.driver, self.url('pickup-request', offer_id=offer_id, request_id=other_request_id))
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['code'], 'offer_full')

	def test_pickup_by_non_driver_is_forbidden(self):
		offer_id = self.create_offer()
		request_id = self.create_request()

		response = self.post_as(self.guest, self.url('pickup-request', offer_id=offer_id, request_id=request_id))

		self.assertEqual(response.status_code, 403)

	def test_pickup_of_passenger_already_onboard_conflicts(self):
		offer_id = self.create_offer(capacity=3)
		self.post_as(self.driver, self.url('pickup-request', offer_id=offer_id, request_id=self.create_request()))
		second_request_id = self.create_request(location='Gare de Lyon')

		response = self.post_as(self.driver, self.url('pickup-request', offer_id=offer_id, request_id=second_request_id))

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['code'], 'already_onboard')

	def test_kick_passenger(self):
		offer_id = self.create_offer()
		request_id = self.create_request()
		self.post_as(self.driver, self.url('pickup-request', offer_id=offer_id, request_id=request_id))

		response = self.post_as(self.driver, self.url('kick-passenger', offer_id=offer_id, passenger_id=self.guest.id))

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['request_recreated'])
		self.assertEqual(response.data['passengers'], [])

	def test_kick_missing_passenger_is_404(self):
		offer_id = self.create_offer()

		response = self.post_as(self.driver, self.url('kick-passenger', offer_id=offer_id, passenger_id=self.guest.id))

		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['code'], 'passenger_not_found')

	def test_leave_ride(self):
		offer_id = self.create_offer()
		request_id = self.create_request()
		self.post_as(self.driver, self.url('pickup-request', offer_id=offer_id, request_id=request_id))

		response = self.post_as(self.guest, self.url('leave-ride', offer_id=offer_id))

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['request_recreated'])

	def test_cancel_offer_twice_conflicts(self):
		offer_id = self.create_offer()

		first = self.post_as(self.driver, self.url('cancel-offer', offer_id=offer_id))
		second = self.post_as(self.driver, self.url('cancel-offer', offer_id=offer_id))

		self.assertEqual(first.status_code, 200)
		self.assertEqual(first.data['status'], RideEntry.CANCELLED)
		self.assertEqual(second.status_code, 409)
		self.assertEqual(second.data['code'], 'offer_not_active')

	def test_cancel_request(self):
		request_id = self.create_request()

		response = self.post_as(self.guest, self.url('cancel-request', request_id=request_id))

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], RideEntry.CANCELLED)

	def test_offer_matches_for_cancelled_offer(self):
		offer_id = self.create_offer()
		self.post_as(self.driver, self.url('cancel-offer', offer_id=offer_id))

		self.client.force_authenticate(user=self.driver)
		response = self.client.get(self.url('offer-matches', offer_id=offer_id))

		self.assertEqual(response.status_code, 409)

	def test_offer_matches(self):
		offer_id = self.create_offer()
		request_id = self.create_request()

		self.client.force_authenticate(user=self.driver)
		response = self.client.get(self.url('offer-matches', offer_id=offer_id))

		self.assertEqual(response.status_code, 200)
		self.assertEqual([m['request']['id'] for m in response.data['matches']], [request_id])
