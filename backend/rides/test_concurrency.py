import threading

from django.db import connection
from django.test import TransactionTestCase, skipUnlessDBFeature

from accounts.models import User
from common.testing import LOUVRE_AREA, PARIS_CENTER, RecordingNotifier, build_test_match_finder
from parties.models import Party
from services.ride_management import OfferFullError, RequestNotActiveError, RideLedger
from .models import RideEntry


def run_together(*calls):
	"""
	Start every call on its own thread behind a barrier so they hit the
	database at the same time.

	Returns:
		One entry per call, in order: 'ok' or the raised exception class
	"""
	barrier = threading.Barrier(len(calls))
	outcomes = [None] * len(calls)

	def worker(index, call):
		try:
			barrier.wait()
			call()
			outcomes[index] = 'ok'
		except Exception as e:
			outcomes[index] = type(e)
		finally:
			connection.close()

	threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
	for thread in threads:
		thread.start()
	for thread in threads:
		thread.join(timeout=30)
	return outcomes


@skipUnlessDBFeature('has_select_for_update')
class ConcurrentLedgerTests(TransactionTestCase):
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='pass1234')
		self.party = Party.objects.create(name='Rooftop', address='Venue', organizer=self.driver)
		self.notifier = RecordingNotifier()
		self.match_finder = build_test_match_finder({
			'Hotel de Ville': PARIS_CENTER,
			'Louvre': LOUVRE_AREA,
		})

	def ledger(self):
		return RideLedger(self.party.id, notifier=self.notifier, match_finder=self.match_finder)

	def guest_request(self, username):
		guest = User.objects.create_user(username=username, password='pass1234')
		return self.ledger().create_request(guest.id, 'Louvre').entry

	def test_concurrent_pickups_never_overfill(self):
		offer = self.ledger().create_offer(self.driver.id, RideEntry.PERSONAL_VEHICLE, 'Hotel de Ville', 2).entry
		requests = [self.guest_request(f'guest_{i}') for i in range(5)]

		outcomes = run_together(*[
			(lambda request_id=r.id: self.ledger().pickup(offer.id, request_id))
			for r in requests
		])

		self.assertEqual(outcomes.count('ok'), 2)
		self.assertEqual(outcomes.count(OfferFullError), 3)

		offer.refresh_from_db()
		self.assertEqual(len(offer.passengers), 2)
		self.assertEqual(len(set(offer.passenger_ids())), 2)
		completed = RideEntry.objects.filter(kind=RideEntry.REQUEST, status=RideEntry.COMPLETED)
		self.assertEqual(completed.count(), 2)
		self.assertEqual(
			RideEntry.objects.filter(kind=RideEntry.REQUEST, status=RideEntry.ACTIVE).count(), 3
		)

	def test_pickup_and_cancel_request_have_one_winner(self):
		offer = self.ledger().create_offer(self.driver.id, RideEntry.PERSONAL_VEHICLE, 'Hotel de Ville', 3).entry
		request = self.guest_request('guest')

		pickup, cancel = run_together(
			lambda: self.ledger().pickup(offer.id, request.id),
			lambda: self.ledger().cancel_request(request.id, request.owner_id),
		)

		self.assertEqual([pickup, cancel].count('ok'), 1)
		offer.refresh_from_db()
		request.refresh_from_db()
		if pickup == 'ok':
			self.assertEqual(cancel, RequestNotActiveError)
			self.assertEqual(request.status, RideEntry.COMPLETED)
			self.assertEqual(offer.passenger_ids(), [request.owner_id])
		else:
			self.assertEqual(pickup, RequestNotActiveError)
			self.assertEqual(request.status, RideEntry.CANCELLED)
			self.assertEqual(offer.passengers, [])
