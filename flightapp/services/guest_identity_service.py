import logging
from uuid import UUID

import config.conf as conf
from db.models import UserRole
from storage import BookingStore, DuplicateRecord
from services.errors import IdentityResolutionFailed

logger = logging.getLogger(__name__)


class GuestIdentityService:
    """
    Resolves the single sentinel account that owns every guest booking.

    Lookup first; on a miss, insert. Concurrent first callers both miss
    and both insert; the store's unique constraint on email rejects all
    but one, and the losers re-read the winner's record.
    """

    def __init__(self, store: BookingStore, guest_email: str = conf.GUEST_EMAIL):
        self.store = store
        self.guest_email = guest_email

    async def resolve_guest_owner(self) -> UUID:
        existing = await self.store.get_user_by_email(self.guest_email)
        if existing:
            return existing.id

        try:
            created = await self.store.create_user(
                email=self.guest_email,
                role=UserRole.guest,
                first_name=conf.GUEST_FIRST_NAME,
                last_name=conf.GUEST_LAST_NAME,
            )
            logger.info("Created guest owner %s", created.id)
            return created.id

        except DuplicateRecord:
            logger.info("Guest owner created concurrently, re-reading")

        except Exception as error:
            # The insert may have committed before the failure was reported
            logger.exception("Guest owner creation failed: %s", error)

        existing = await self.store.get_user_by_email(self.guest_email)
        if existing:
            return existing.id

        raise IdentityResolutionFailed("Guest owner could not be found or created")
