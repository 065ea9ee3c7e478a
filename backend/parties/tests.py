import uuid

from django.test import TestCase

from accounts.models import User
from .directory import ModelPartyDirectory
from .models import Party


class PartyDirectoryTests(TestCase):
	def setUp(self):
		self.organizer = User.objects.create_user(username='host', password='x')

	def test_venue_address(self):
		party = Party.objects.create(name='Rooftop', address='  8 Place de la Bastille ', organizer=self.organizer)
		self.assertEqual(ModelPartyDirectory().venue_address(party.id), '8 Place de la Bastille')

	def test_blank_or_missing_venue(self):
		party = Party.objects.create(name='Secret', address='', organizer=self.organizer)
		self.assertIsNone(ModelPartyDirectory().venue_address(party.id))
		self.assertIsNone(ModelPartyDirectory().venue_address(uuid.uuid4()))
