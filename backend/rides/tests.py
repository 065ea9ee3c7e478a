from django.db import DatabaseError
from django.db.models import F
from django.test import TestCase
from unittest.mock import patch

from accounts.models import User
from common.testing import LOUVRE_AREA, PARIS_CENTER, RecordingNotifier, build_test_match_finder
from parties.models import Party
from services.ride_management import (
	RideLedger,
	AlreadyOnboardError,
	ConcurrentUpdateError,
	DuplicateActiveRequestError,
	EntryNotFoundError,
	InvalidCapacityError,
	InvalidRideDataError,
	OfferFullError,
	OfferNotActiveError,
	PassengerNotFoundError,
	RequestNotActiveError,
	UnauthorizedError,
)
from .models import RideEntry


class LedgerTestCase(TestCase):
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='pass1234')
		self.guest_a = User.objects.create_user(username='guest_a', password='pass1234')
		self.guest_b = User.objects.create_user(username='guest_b', password='pass1234')
		self.party = Party.objects.create(name='Rooftop', address='Venue', organizer=self.driver)

		self.notifier = RecordingNotifier()
		self.match_finder = build_test_match_finder({
			'Hotel de Ville': PARIS_CENTER,
			'Louvre': LOUVRE_AREA,
		})
		self.ledger = RideLedger(self.party.id, notifier=self.notifier, match_finder=self.match_finder)

	def offer(self, capacity=3, mode=RideEntry.PERSONAL_VEHICLE):
		return self.ledger.create_offer(self.driver.id, mode, 'Hotel de Ville', capacity).entry

	def request(self, user, location='Louvre'):
		return self.ledger.create_request(user.id, location).entry

	def active_requests_of(self, user):
		return RideEntry.objects.filter(
			party=self.party, kind=RideEntry.REQUEST, status=RideEntry.ACTIVE, owner=user
		)


class CreateEntryTests(LedgerTestCase):
	def test_create_offer_starts_active_and_empty(self):
		offer = self.offer(capacity=2)

		self.assertEqual(offer.status, RideEntry.ACTIVE)
		self.assertEqual(offer.passengers, [])
		self.assertEqual(offer.capacity, 2)
		self.assertEqual(offer.version, 0)

	def test_create_offer_rejects_zero_capacity(self):
		with self.assertRaises(InvalidCapacityError):
			self.ledger.create_offer(self.driver.id, RideEntry.PERSONAL_VEHICLE, 'Hotel de Ville', 0)
		self.assertFalse(RideEntry.objects.exists())

	def test_create_offer_rejects_unknown_mode(self):
		with self.assertRaises(InvalidRideDataError):
			self.ledger.create_offer(self.driver.id, 'rocket', 'Hotel de Ville', 2)

	def test_create_offer_returns_ranked_matches(self):
		request = self.request(self.guest_a)

		result = self.ledger.create_offer(self.driver.id, RideEntry.PERSONAL_VEHICLE, 'Hotel de Ville', 3)

		self.assertEqual([m.request.id for m in result.matches], [request.id])
		self.assertLess(result.matches[0].distance_km, 1.4)

	def test_duplicate_request_keeps_single_active_request(self):
		first = self.request(self.guest_a)

		with self.assertRaises(DuplicateActiveRequestError) as ctx:
			self.request(self.guest_a, location='Somewhere else')

		self.assertEqual(ctx.exception.existing.id, first.id)
		self.assertEqual(self.active_requests_of(self.guest_a).count(), 1)

	def test_request_location_falls_back_to_profile(self):
		self.guest_a.profile_location = '  Gare du Nord '
		self.guest_a.save(update_fields=['profile_location'])

		request = self.ledger.create_request(self.guest_a.id).entry

		self.assertEqual(request.departure_location, 'Gare du Nord')

	def test_request_without_any_location_is_rejected(self):
		with self.assertRaises(InvalidRideDataError):
			self.ledger.create_request(self.guest_a.id, '   ')


class PickupTests(LedgerTestCase):
	def test_pickup_adds_passenger_and_completes_request(self):
		offer = self.offer()
		request = self.request(self.guest_a)

		result = self.ledger.pickup(offer.id, request.id)

		offer.refresh_from_db()
		request.refresh_from_db()
		self.assertEqual(offer.passenger_ids(), [self.guest_a.id])
		self.assertEqual(offer.passengers[0]['pickup_location'], 'Louvre')
		self.assertEqual(offer.passengers[0]['request_id'], str(request.id))
		self.assertEqual(request.status, RideEntry.COMPLETED)
		self.assertIsNotNone(request.completed_at)
		self.assertEqual(result.entry.seats_left, 2)

		self.assertEqual(self.notifier.actions_for(self.guest_a.id), ['ride_pickup'])
		self.assertEqual(self.notifier.actions_for(self.driver.id), ['ride_passenger_added'])

	def test_pickup_then_capacity_exhaustion(self):
		offer = self.offer(capacity=1)
		request_a = self.request(self.guest_a)
		request_b = self.request(self.guest_b)

		self.ledger.pickup(offer.id, request_a.id)
		with self.assertRaises(OfferFullError):
			self.ledger.pickup(offer.id, request_b.id)

		offer.refresh_from_db()
		request_b.refresh_from_db()
		self.assertEqual(len(offer.passengers), 1)
		self.assertEqual(request_b.status, RideEntry.ACTIVE)

	def test_repeated_pickups_never_exceed_capacity(self):
		offer = self.offer(capacity=2)
		guests = [User.objects.create_user(username=f'guest_{i}', password='x') for i in range(5)]
		requests = [self.request(guest) for guest in guests]

		succeeded, full = 0, 0
		for request in requests:
			try:
				self.ledger.pickup(offer.id, request.id)
				succeeded += 1
			except OfferFullError:
				full += 1

		offer.refresh_from_db()
		self.assertEqual(succeeded, 2)
		self.assertEqual(full, 3)
		self.assertEqual(len(offer.passengers), offer.capacity)

	def test_failed_request_transition_rolls_back_passenger(self):
		offer = self.offer()
		request = self.request(self.guest_a)
		self.ledger.cancel_request(request.id, self.guest_a.id)
		self.notifier.sent.clear()

		with self.assertRaises(RequestNotActiveError):
			self.ledger.pickup(offer.id, request.id)

		offer.refresh_from_db()
		self.assertEqual(offer.passengers, [])
		self.assertEqual(offer.version, 0)
		self.assertEqual(self.notifier.sent, [])

	def test_pickup_on_cancelled_offer(self):
		offer = self.offer()
		request = self.request(self.guest_a)
		self.ledger.cancel_offer(offer.id, self.driver.id)

		with self.assertRaises(OfferNotActiveError):
			self.ledger.pickup(offer.id, request.id)

	def test_pickup_by_someone_else_is_unauthorized(self):
		offer = self.offer()
		request = self.request(self.guest_a)

		with self.assertRaises(UnauthorizedError):
			self.ledger.pickup(offer.id, request.id, acting_owner_id=self.guest_b.id)

	def test_passenger_cannot_take_a_second_seat(self):
		offer = self.offer(capacity=3)
		self.ledger.pickup(offer.id, self.request(self.guest_a).id)
		second = self.request(self.guest_a, location='Gare de Lyon')

		with self.assertRaises(AlreadyOnboardError):
			self.ledger.pickup(offer.id, second.id)

		offer.refresh_from_db()
		second.refresh_from_db()
		self.assertEqual(offer.passenger_ids(), [self.guest_a.id])
		self.assertEqual(offer.seats_left, 2)
		self.assertEqual(second.status, RideEntry.ACTIVE)

	def test_driver_cannot_pick_up_own_request(self):
		offer = self.offer()
		own = self.request(self.driver)
		self.notifier.sent.clear()

		with self.assertRaises(AlreadyOnboardError):
			self.ledger.pickup(offer.id, own.id)

		offer.refresh_from_db()
		own.refresh_from_db()
		self.assertEqual(offer.passengers, [])
		self.assertEqual(own.status, RideEntry.ACTIVE)
		self.assertEqual(self.notifier.sent, [])

	def test_leave_after_rejected_double_pickup_keeps_one_request(self):
		offer = self.offer()
		self.ledger.pickup(offer.id, self.request(self.guest_a).id)
		second = self.request(self.guest_a, location='Gare de Lyon')
		with self.assertRaises(AlreadyOnboardError):
			self.ledger.pickup(offer.id, second.id)

		self.ledger.leave_ride(offer.id, self.guest_a.id)

		offer.refresh_from_db()
		self.assertEqual(offer.passengers, [])
		self.assertEqual(self.active_requests_of(self.guest_a).count(), 1)

	def test_pickup_unknown_request(self):
		offer = self.offer()
		with self.assertRaises(EntryNotFoundError):
			self.ledger.pickup(offer.id, offer.id)

	def test_entries_of_other_parties_are_invisible(self):
		other_party = Party.objects.create(name='Elsewhere', organizer=self.driver)
		other = RideLedger(other_party.id, notifier=self.notifier, match_finder=self.match_finder)
		request = other.create_request(self.guest_a.id, 'Louvre').entry
		offer = self.offer()

		with self.assertRaises(EntryNotFoundError):
			self.ledger.pickup(offer.id, request.id)


class PassengerRemovalTests(LedgerTestCase):
	def setUp(self):
		super().setUp()
		self.ride = self.offer()
		self.ledger.pickup(self.ride.id, self.ledger.create_request(self.guest_a.id, '12 Rue X').entry.id)
		self.notifier.sent.clear()

	def test_kick_regenerates_request(self):
		result = self.ledger.kick_passenger(self.ride.id, self.guest_a.id, self.driver.id)

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.passengers, [])
		requests = self.active_requests_of(self.guest_a)
		self.assertEqual(requests.count(), 1)
		self.assertEqual(requests.get().departure_location, '12 Rue X')
		self.assertEqual(requests.get().created_by_id, self.driver.id)
		self.assertEqual(len(result.created_requests), 1)

		self.assertEqual(self.notifier.actions_for(self.guest_a.id), ['ride_kicked'])
		self.assertEqual(self.notifier.actions_for(self.driver.id), ['ride_kick_confirmed'])

	def test_kick_keeps_existing_request(self):
		self.request(self.guest_a, location='Gare de Lyon')

		result = self.ledger.kick_passenger(self.ride.id, self.guest_a.id, self.driver.id)

		self.assertEqual(result.created_requests, [])
		requests = self.active_requests_of(self.guest_a)
		self.assertEqual(requests.count(), 1)
		self.assertEqual(requests.get().departure_location, 'Gare de Lyon')
		self.assertFalse(self.notifier.sent[0]['metadata']['request_recreated'])

	def test_only_driver_can_kick(self):
		with self.assertRaises(UnauthorizedError):
			self.ledger.kick_passenger(self.ride.id, self.guest_a.id, self.guest_b.id)

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.passenger_ids(), [self.guest_a.id])

	def test_kick_unknown_passenger(self):
		with self.assertRaises(PassengerNotFoundError):
			self.ledger.kick_passenger(self.ride.id, self.guest_b.id, self.driver.id)

	def test_leave_ride_regenerates_request_and_notifies_driver(self):
		result = self.ledger.leave_ride(self.ride.id, self.guest_a.id)

		self.assertEqual(result.entry.passengers, [])
		self.assertEqual(result.entry.seats_left, 3)
		self.assertEqual(self.active_requests_of(self.guest_a).count(), 1)
		self.assertEqual(self.notifier.actions_for(self.driver.id), ['ride_passenger_left'])
		self.assertEqual(self.notifier.actions_for(self.guest_a.id), [])

	def test_leave_ride_when_not_a_passenger(self):
		with self.assertRaises(PassengerNotFoundError):
			self.ledger.leave_ride(self.ride.id, self.guest_b.id)

	def test_leave_cancelled_offer(self):
		self.ledger.cancel_offer(self.ride.id, self.driver.id)
		with self.assertRaises(OfferNotActiveError):
			self.ledger.leave_ride(self.ride.id, self.guest_a.id)


class CancelOfferTests(LedgerTestCase):
	def test_cancel_offer_with_two_passengers_one_already_requesting(self):
		offer = self.offer()
		self.ledger.pickup(offer.id, self.ledger.create_request(self.guest_a.id, '1 Rue A').entry.id)
		self.ledger.pickup(offer.id, self.ledger.create_request(self.guest_b.id, '2 Rue B').entry.id)
		# guest_b posts an unrelated request after joining
		self.ledger.create_request(self.guest_b.id, 'Gare de Lyon')
		self.notifier.sent.clear()

		result = self.ledger.cancel_offer(offer.id, self.driver.id)

		offer.refresh_from_db()
		self.assertEqual(offer.status, RideEntry.CANCELLED)
		self.assertIsNotNone(offer.cancelled_at)
		self.assertEqual(len(offer.passengers), 2)

		self.assertEqual(self.active_requests_of(self.guest_a).count(), 1)
		self.assertEqual(self.active_requests_of(self.guest_a).get().departure_location, '1 Rue A')
		self.assertEqual(self.active_requests_of(self.guest_b).count(), 1)
		self.assertEqual(self.active_requests_of(self.guest_b).get().departure_location, 'Gare de Lyon')
		self.assertEqual([r.owner_id for r in result.created_requests], [self.guest_a.id])

		self.assertEqual(self.notifier.actions_for(self.guest_a.id), ['offer_cancelled'])
		self.assertEqual(self.notifier.actions_for(self.guest_b.id), ['offer_cancelled'])
		self.assertEqual(self.notifier.sent_to(self.guest_a.id)[0]['metadata']['request_outcome'], 'recreated')
		self.assertEqual(self.notifier.sent_to(self.guest_b.id)[0]['metadata']['request_outcome'], 'existing')
		self.assertEqual(self.notifier.actions_for(self.driver.id), ['offer_cancel_confirmed'])

	def test_cancel_offer_twice(self):
		offer = self.offer()
		self.ledger.cancel_offer(offer.id, self.driver.id)

		with self.assertRaises(OfferNotActiveError):
			self.ledger.cancel_offer(offer.id, self.driver.id)

	def test_cancel_offer_requires_owner(self):
		offer = self.offer()
		with self.assertRaises(UnauthorizedError):
			self.ledger.cancel_offer(offer.id, self.guest_a.id)

		offer.refresh_from_db()
		self.assertEqual(offer.status, RideEntry.ACTIVE)

	def test_failed_request_recreation_does_not_undo_cancellation(self):
		offer = self.offer()
		self.ledger.pickup(offer.id, self.request(self.guest_a).id)
		self.ledger.pickup(offer.id, self.request(self.guest_b).id)

		original_insert = self.ledger._insert_request

		def flaky_insert(owner_id, location, created_by_id):
			if owner_id == self.guest_a.id:
				raise DatabaseError('insert failed')
			return original_insert(owner_id, location, created_by_id)

		with patch.object(self.ledger, '_insert_request', side_effect=flaky_insert):
			result = self.ledger.cancel_offer(offer.id, self.driver.id)

		offer.refresh_from_db()
		self.assertEqual(offer.status, RideEntry.CANCELLED)
		self.assertEqual(self.active_requests_of(self.guest_a).count(), 0)
		self.assertEqual(self.active_requests_of(self.guest_b).count(), 1)
		self.assertEqual([r.owner_id for r in result.created_requests], [self.guest_b.id])

		# guest_a must not be told an open request exists
		told_a = self.notifier.sent_to(self.guest_a.id)[-1]
		self.assertEqual(told_a['metadata']['request_outcome'], 'failed')
		self.assertNotIn('still open', told_a['body'])
		self.assertEqual(self.notifier.sent_to(self.guest_b.id)[-1]['metadata']['request_outcome'], 'recreated')


class CancelRequestTests(LedgerTestCase):
	def test_cancel_request(self):
		request = self.request(self.guest_a)

		result = self.ledger.cancel_request(request.id, self.guest_a.id)

		self.assertEqual(result.entry.status, RideEntry.CANCELLED)
		self.assertIsNotNone(result.entry.cancelled_at)
		self.assertEqual(self.notifier.actions_for(self.guest_a.id), ['request_cancelled_by_user'])

	def test_cancel_picked_up_request(self):
		offer = self.offer()
		request = self.request(self.guest_a)
		self.ledger.pickup(offer.id, request.id)

		with self.assertRaises(RequestNotActiveError):
			self.ledger.cancel_request(request.id, self.guest_a.id)

	def test_cancel_request_of_someone_else(self):
		request = self.request(self.guest_a)
		with self.assertRaises(UnauthorizedError):
			self.ledger.cancel_request(request.id, self.guest_b.id)


class VersionConflictTests(LedgerTestCase):
	def bump_before_write(self, times):
		"""Wrap _write so another writer bumps the version first ``times`` times."""
		original = RideLedger._write
		calls = []

		def racing_write(ledger, entry, **changes):
			calls.append(entry.pk)
			if len(calls) <= times:
				RideEntry.objects.filter(pk=entry.pk).update(version=F('version') + 1)
			return original(ledger, entry, **changes)

		return patch.object(RideLedger, '_write', racing_write), calls

	def test_conflict_is_retried(self):
		offer = self.offer()
		request = self.request(self.guest_a)
		patcher, calls = self.bump_before_write(times=1)

		with patcher:
			self.ledger.pickup(offer.id, request.id)

		offer.refresh_from_db()
		self.assertEqual(len(calls), 2)
		self.assertEqual(offer.passenger_ids(), [self.guest_a.id])
		# Notifications only for the attempt that committed
		self.assertEqual(self.notifier.actions_for(self.guest_a.id), ['ride_pickup'])

	def test_conflict_surfaces_after_max_retries(self):
		offer = self.offer()
		request = self.request(self.guest_a)
		patcher, calls = self.bump_before_write(times=10)

		with patcher:
			with self.assertRaises(ConcurrentUpdateError):
				self.ledger.pickup(offer.id, request.id)

		offer.refresh_from_db()
		request.refresh_from_db()
		self.assertEqual(len(calls), self.ledger.max_retries)
		self.assertEqual(offer.passengers, [])
		self.assertEqual(request.status, RideEntry.ACTIVE)
		self.assertEqual(self.notifier.sent, [])

	def test_zero_retries_is_honoured(self):
		ledger = RideLedger(self.party.id, notifier=self.notifier, match_finder=self.match_finder, max_retries=0)
		offer = self.offer()
		request = self.request(self.guest_a)
		patcher, calls = self.bump_before_write(times=10)

		with patcher:
			with self.assertRaises(ConcurrentUpdateError):
				ledger.pickup(offer.id, request.id)

		self.assertEqual(ledger.max_retries, 0)
		self.assertEqual(len(calls), 1)


class NotificationFanOutTests(LedgerTestCase):
	def test_failing_recipient_does_not_block_others(self):
		notifier = RecordingNotifier(fail_for={self.guest_a.id})
		ledger = RideLedger(self.party.id, notifier=notifier, match_finder=self.match_finder)
		offer = ledger.create_offer(self.driver.id, RideEntry.PERSONAL_VEHICLE, 'Hotel de Ville', 3).entry
		ledger.pickup(offer.id, ledger.create_request(self.guest_a.id, 'Louvre').entry.id)
		ledger.pickup(offer.id, ledger.create_request(self.guest_b.id, 'Louvre').entry.id)
		notifier.sent.clear()

		ledger.cancel_offer(offer.id, self.driver.id)

		self.assertEqual(notifier.actions_for(self.guest_b.id), ['offer_cancelled'])
		self.assertEqual(notifier.actions_for(self.driver.id), ['offer_cancel_confirmed'])
		self.assertEqual(RideEntry.objects.get(pk=offer.id).status, RideEntry.CANCELLED)

	def test_notification_metadata_carries_party_and_deep_link(self):
		offer = self.offer()
		request = self.request(self.guest_a)

		self.ledger.pickup(offer.id, request.id)

		sent = self.notifier.sent[0]
		self.assertEqual(sent['metadata']['partyId'], str(self.party.id))
		self.assertEqual(sent['metadata']['offer_id'], str(offer.id))
		self.assertEqual(sent['deep_link'], f'/carsharing?partyId={self.party.id}')
