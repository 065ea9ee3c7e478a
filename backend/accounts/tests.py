from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from .models import User


class AuthFlowTests(TestCase):
	def setUp(self):
		self.client = APIClient()

	def register(self, **extra):
		data = {
			'username': 'guest',
			'password': 'pass1234',
			'email': 'guest@example.com',
			'full_name': 'Guest One',
			**extra,
		}
		return self.client.post(reverse('accounts:register'), data, format='json')

	def test_register_returns_tokens(self):
		response = self.register(profile_location='12 Rue X')

		self.assertEqual(response.status_code, 201)
		self.assertIn('access', response.data['tokens'])
		self.assertEqual(User.objects.get(username='guest').profile_location, '12 Rue X')

	def test_register_duplicate_email(self):
		self.register()
		response = self.register(username='someone_else')
		self.assertEqual(response.status_code, 400)

	def test_login_and_refresh(self):
		self.register()

		login = self.client.post(
			reverse('accounts:login'), {'username': 'guest', 'password': 'pass1234'}, format='json'
		)
		self.assertEqual(login.status_code, 200)

		refresh = self.client.post(
			reverse('accounts:refresh'), {'refresh': login.data['tokens']['refresh']}, format='json'
		)
		self.assertEqual(refresh.status_code, 200)
		self.assertIn('access', refresh.data)

	def test_login_wrong_password(self):
		self.register()
		response = self.client.post(
			reverse('accounts:login'), {'username': 'guest', 'password': 'nope'}, format='json'
		)
		self.assertEqual(response.status_code, 400)

	def test_refresh_with_garbage(self):
		response = self.client.post(reverse('accounts:refresh'), {'refresh': 'garbage'}, format='json')
		self.assertEqual(response.status_code, 401)

	def test_profile_update_with_bearer_token(self):
		access = self.register().data['tokens']['access']
		self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')

		response = self.client.patch(reverse('accounts:profile'), {'profile_location': 'Gare du Nord'}, format='json')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['profile_location'], 'Gare du Nord')
