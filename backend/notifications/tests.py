from datetime import timedelta
from io import StringIO

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from realtime.notifications import ChannelsNotifier, user_group
from .models import Notification
from .services import delete_old_notifications
from .tasks import cleanup_old_notifications_task


def age(notification, days):
	Notification.objects.filter(pk=notification.pk).update(created_at=timezone.now() - timedelta(days=days))


class ChannelsNotifierTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user(username='guest', password='x')

	def test_persists_and_pushes_to_user_group(self):
		layer = get_channel_layer()
		channel = async_to_sync(layer.new_channel)()
		async_to_sync(layer.group_add)(user_group(self.user.id), channel)

		ChannelsNotifier().notify(
			self.user.id, 'You have a ride!', 'Pickup at 12 Rue X.',
			{'action': 'ride_pickup', 'partyId': 'p-1'}, '/carsharing?partyId=p-1',
		)

		notification = Notification.objects.get(user=self.user)
		self.assertEqual(notification.title, 'You have a ride!')
		self.assertEqual(notification.metadata['url'], '/carsharing?partyId=p-1')
		self.assertFalse(notification.read)

		event = async_to_sync(layer.receive)(channel)
		self.assertEqual(event['type'], 'ride_notification')
		self.assertEqual(event['notification_id'], str(notification.id))
		self.assertEqual(event['metadata']['action'], 'ride_pickup')
		self.assertEqual(event['url'], '/carsharing?partyId=p-1')

	def test_insert_prunes_expired_history_of_that_user(self):
		other = User.objects.create_user(username='other', password='x')
		mine = Notification.objects.create(user=self.user, title='old', message='old')
		theirs = Notification.objects.create(user=other, title='old', message='old')
		age(mine, 31)
		age(theirs, 31)

		ChannelsNotifier().notify(self.user.id, 'new', 'new', {})

		self.assertFalse(Notification.objects.filter(pk=mine.pk).exists())
		self.assertTrue(Notification.objects.filter(pk=theirs.pk).exists())


class RetentionTests(TestCase):
	def setUp(self):
		user = User.objects.create_user(username='guest', password='x')
		self.fresh = Notification.objects.create(user=user, title='fresh', message='')
		self.stale = Notification.objects.create(user=user, title='stale', message='')
		age(self.stale, 45)

	def test_delete_old_notifications(self):
		self.assertEqual(delete_old_notifications(), 1)
		self.assertEqual(list(Notification.objects.values_list('title', flat=True)), ['fresh'])

	def test_cleanup_command_dry_run(self):
		out = StringIO()
		call_command('cleanup_old_notifications', dry_run=True, stdout=out)

		self.assertIn('Would delete 1', out.getvalue())
		self.assertEqual(Notification.objects.count(), 2)

	def test_cleanup_command_custom_days(self):
		out = StringIO()
		call_command('cleanup_old_notifications', days=60, stdout=out)

		self.assertIn('Deleted 0', out.getvalue())
		self.assertEqual(Notification.objects.count(), 2)

	def test_cleanup_task(self):
		self.assertEqual(cleanup_old_notifications_task(), 1)


class NotificationApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.user = User.objects.create_user(username='guest', password='x')
		self.other = User.objects.create_user(username='other', password='x')
		self.client.force_authenticate(user=self.user)
		self.first = Notification.objects.create(user=self.user, title='first', message='')
		self.second = Notification.objects.create(user=self.user, title='second', message='', read=True)
		Notification.objects.create(user=self.other, title='not mine', message='')

	def test_lists_own_notifications(self):
		response = self.client.get(reverse('notifications:list'))

		self.assertEqual(response.status_code, 200)
		self.assertEqual({n['title'] for n in response.data['results']}, {'first', 'second'})
		self.assertEqual(response.data['unread_count'], 1)
		self.assertFalse(response.data['has_more'])

	def test_unread_filter(self):
		response = self.client.get(reverse('notifications:list'), {'unread': '1'})
		self.assertEqual([n['title'] for n in response.data['results']], ['first'])

	def test_mark_read(self):
		response = self.client.post(reverse('notifications:read', kwargs={'notification_id': self.first.id}))

		self.assertEqual(response.status_code, 200)
		self.first.refresh_from_db()
		self.assertTrue(self.first.read)

	def test_mark_someone_elses_notification(self):
		theirs = Notification.objects.get(user=self.other)
		response = self.client.post(reverse('notifications:read', kwargs={'notification_id': theirs.id}))
		self.assertEqual(response.status_code, 404)

	def test_mark_all_read(self):
		response = self.client.post(reverse('notifications:read-all'))

		self.assertEqual(response.data['updated'], 1)
		self.assertFalse(Notification.objects.filter(user=self.user, read=False).exists())

	def test_delete_one(self):
		response = self.client.delete(reverse('notifications:delete', kwargs={'notification_id': self.first.id}))

		self.assertEqual(response.status_code, 204)
		self.assertFalse(Notification.objects.filter(pk=self.first.pk).exists())

	def test_delete_all(self):
		response = self.client.delete(reverse('notifications:list'))

		self.assertEqual(response.status_code, 204)
		self.assertFalse(Notification.objects.filter(user=self.user).exists())
		self.assertTrue(Notification.objects.filter(user=self.other).exists())
