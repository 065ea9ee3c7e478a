"""Test doubles shared by the app test suites."""

from common.utils import Coordinates
from services.geocoding import GeocodeResolver, InMemoryGeocodeCache
from services.matching import MatchFinder

PARIS_CENTER = Coordinates(48.8566, 2.3522)
LOUVRE_AREA = Coordinates(48.8606, 2.3376)


class DictGeocodeSource:
    """Geocode source answering from a fixed address book; counts lookups."""

    def __init__(self, book=None):
        self.book = {k.strip().casefold(): v for k, v in (book or {}).items()}
        self.lookups = []

    def lookup(self, address):
        self.lookups.append(address)
        return self.book.get(address.strip().casefold())


class RecordingNotifier:
    """Notifier that keeps every call instead of delivering it."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def notify(self, user_id, title, body, metadata, deep_link=None):
        if user_id in self.fail_for:
            raise RuntimeError(f"delivery to {user_id} failed")
        self.sent.append({
            "user_id": user_id,
            "title": title,
            "body": body,
            "metadata": metadata,
            "deep_link": deep_link,
        })

    def actions_for(self, user_id):
        return [n["metadata"]["action"] for n in self.sent if n["user_id"] == user_id]

    def sent_to(self, user_id):
        return [n for n in self.sent if n["user_id"] == user_id]


class StaticPartyDirectory:
    def __init__(self, venues=None):
        self.venues = venues or {}

    def venue_address(self, party_id):
        return self.venues.get(str(party_id))


def build_test_match_finder(book, venues=None, **kwargs):
    resolver = GeocodeResolver(cache=InMemoryGeocodeCache(), source=DictGeocodeSource(book))
    return MatchFinder(resolver=resolver, party_directory=StaticPartyDirectory(venues), **kwargs)
