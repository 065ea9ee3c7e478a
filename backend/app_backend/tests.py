from django.test import TestCase
from rest_framework.test import APIClient
from unittest.mock import MagicMock, patch


class HealthCheckTests(TestCase):
	def setUp(self):
		self.client = APIClient()

	@patch('app_backend.views.redis.Redis.from_url')
	def test_healthy(self, mock_from_url):
		mock_from_url.return_value = MagicMock()

		response = self.client.get('/health/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'healthy')
		self.assertEqual(
			set(response.data['services']),
			{'database', 'redis', 'channels', 'celery'}
		)

	@patch('app_backend.views.redis.Redis.from_url')
	def test_redis_down(self, mock_from_url):
		mock_from_url.return_value.ping.side_effect = ConnectionError('refused')

		response = self.client.get('/health/')

		self.assertEqual(response.status_code, 503)
		self.assertTrue(response.data['services']['redis'].startswith('unhealthy'))
