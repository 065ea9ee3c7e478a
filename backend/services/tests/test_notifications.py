from django.test import SimpleTestCase, override_settings

from common.testing import RecordingNotifier
from services.notifications import (
	NotificationDispatcher,
	OfferCancelled,
	PickupConfirmed,
	RequestCancelledByUser,
	get_default_notifier,
)


class NotificationMessageTests(SimpleTestCase):
	def test_metadata_is_tagged(self):
		notification = PickupConfirmed(
			user_id=7, party_id='p-1', offer_id='o-1', request_id='r-1', driver_id=3, pickup_location='12 Rue X',
		)

		self.assertEqual(notification.metadata(), {
			'partyId': 'p-1',
			'offer_id': 'o-1',
			'request_id': 'r-1',
			'driver_id': 3,
			'pickup_location': '12 Rue X',
			'action': 'ride_pickup',
		})
		self.assertEqual(notification.deep_link(), '/carsharing?partyId=p-1')
		self.assertIn('12 Rue X', notification.body())

	def test_cancelled_body_depends_on_request_outcome(self):
		bodies = {
			outcome: OfferCancelled(
				user_id=1, party_id='p', offer_id='o', driver_id=2, request_outcome=outcome,
			).body()
			for outcome in (OfferCancelled.RECREATED, OfferCancelled.EXISTING, OfferCancelled.FAILED)
		}

		self.assertEqual(len(set(bodies.values())), 3)
		self.assertIn('still open', bodies[OfferCancelled.EXISTING])
		self.assertNotIn('still open', bodies[OfferCancelled.FAILED])
		self.assertIn('post a new one', bodies[OfferCancelled.FAILED])

	def test_cancelled_metadata_carries_outcome(self):
		notification = OfferCancelled(
			user_id=1, party_id='p', offer_id='o', driver_id=2, request_outcome=OfferCancelled.FAILED,
		)

		self.assertEqual(notification.metadata()['request_outcome'], 'failed')
		self.assertNotIn('RECREATED', notification.metadata())


class NotificationDispatcherTests(SimpleTestCase):
	def test_one_failure_does_not_stop_the_batch(self):
		notifier = RecordingNotifier(fail_for={2})
		batch = [RequestCancelledByUser(user_id=uid, party_id='p', request_id='r') for uid in (1, 2, 3)]

		delivered = NotificationDispatcher(notifier).dispatch(batch)

		self.assertEqual(delivered, 2)
		self.assertEqual([n['user_id'] for n in notifier.sent], [1, 3])

	def test_empty_batch(self):
		self.assertEqual(NotificationDispatcher(RecordingNotifier()).dispatch([]), 0)

	@override_settings(RIDESHARE={'NOTIFIER': 'common.testing.RecordingNotifier'})
	def test_default_notifier_from_settings(self):
		self.assertIsInstance(get_default_notifier(), RecordingNotifier)
