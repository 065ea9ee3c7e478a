"""Read-only party lookups used by ride matching."""

from typing import Optional

from .models import Party


class ModelPartyDirectory:
    """PartyDirectory backed by the parties table."""

    def venue_address(self, party_id) -> Optional[str]:
        address = (
            Party.objects.filter(pk=party_id)
            .values_list('address', flat=True)
            .first()
        )
        if not address or not address.strip():
            return None
        return address.strip()
