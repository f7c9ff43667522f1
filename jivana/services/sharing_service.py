"""
Sharing Service - access tokens for reading a test without an account
"""
import logging
import secrets

from sqlalchemy.orm import Session

from jivana.models import BloodTest, SharedTest
from jivana.services import records
from jivana.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


def generate_access_token() -> str:
    """Opaque URL-safe token, 256 bits"""
    return secrets.token_urlsafe(32)


class SharingService:
    """Create, resolve and deactivate share grants"""

    def share(self, db: Session, blood_test_id: int, shared_by_id: int, recipient_email: str) -> SharedTest:
        """
        Share one of the user's tests

        Args:
            db: Database session
            blood_test_id: Test to share
            shared_by_id: User sharing it; must own the test
            recipient_email: Who the link is for

        Returns:
            Active share grant carrying the access token

        Raises:
            NotFoundError: Unknown test, or owned by someone else
        """
        test = records.get_blood_test(db, blood_test_id)
        if not test or test.user_id != shared_by_id:
            raise NotFoundError("Test not found", resource="blood_test", details={"id": blood_test_id})

        shared = records.create_shared_test(
            db,
            blood_test_id=blood_test_id,
            shared_by_id=shared_by_id,
            shared_with_email=recipient_email,
            access_token=generate_access_token()
        )
        logger.info(f"Test {blood_test_id} shared by user {shared_by_id}")
        return shared

    def resolve(self, db: Session, access_token: str) -> BloodTest:
        """
        Resolve a token to the shared test

        Unknown and deactivated tokens raise the same NotFoundError.
        """
        shared = records.get_shared_test_by_token(db, access_token)
        if not shared or not shared.active:
            raise NotFoundError("Shared test not found", resource="shared_test")

        test = records.get_blood_test(db, shared.blood_test_id)
        if not test:
            raise NotFoundError("Shared test not found", resource="shared_test")
        return test

    def deactivate(self, db: Session, access_token: str) -> SharedTest:
        """Revoke a grant; later resolves report not found"""
        shared = records.set_shared_test_active(db, access_token, False)
        logger.info(f"Share {shared.id} for test {shared.blood_test_id} deactivated")
        return shared
