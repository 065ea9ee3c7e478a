from unittest.mock import AsyncMock

from asgiref.sync import async_to_sync
from django.test import SimpleTestCase

from realtime.consumers import NotificationConsumer
from realtime.notifications import user_group


class NotificationConsumerTests(SimpleTestCase):
	def consumer(self):
		consumer = NotificationConsumer()
		consumer.user_id = 7
		consumer.send_json = AsyncMock()
		return consumer

	def test_forwards_ride_notification(self):
		consumer = self.consumer()

		async_to_sync(consumer.ride_notification)({
			'type': 'ride_notification',
			'notification_id': 'n-1',
			'title': 'Ride cancelled',
			'message': 'The driver cancelled their ride.',
			'metadata': {'action': 'offer_cancelled'},
			'url': '/carsharing?partyId=p-1',
		})

		consumer.send_json.assert_awaited_once_with({
			'type': 'notification',
			'notification_id': 'n-1',
			'title': 'Ride cancelled',
			'message': 'The driver cancelled their ride.',
			'metadata': {'action': 'offer_cancelled'},
			'url': '/carsharing?partyId=p-1',
		})

	def test_ping(self):
		consumer = self.consumer()

		async_to_sync(consumer.handle_message)('ping', {'type': 'ping'})

		consumer.send_json.assert_awaited_once_with({'type': 'pong'})

	def test_unknown_message(self):
		consumer = self.consumer()

		async_to_sync(consumer.receive_json)({'type': 'dance'})

		consumer.send_json.assert_awaited_once_with({'type': 'error', 'message': 'Unknown message type: dance'})

	def test_user_group_name(self):
		self.assertEqual(user_group(7), 'user_7')
