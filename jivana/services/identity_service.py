"""
Identity Service - who is calling
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from jivana.models import User
from jivana.services import records
from jivana.utils.exceptions import AuthenticationError, ConflictError
from jivana.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


class IdentityProvider:
    """Registers and authenticates users"""

    def register(
        self,
        db: Session,
        username: str,
        email: str,
        password: str,
        external_id: Optional[str] = None
    ) -> User:
        raise NotImplementedError

    def authenticate(self, db: Session, username: str, password: str) -> User:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    """Username/password accounts kept in the users table"""

    def register(
        self,
        db: Session,
        username: str,
        email: str,
        password: str,
        external_id: Optional[str] = None
    ) -> User:
        """
        Create an account

        Raises:
            ConflictError: Username, email or external id already taken
        """
        if records.get_user_by_username(db, username):
            raise ConflictError("Username already registered")
        if records.get_user_by_email(db, email):
            raise ConflictError("Email already registered")

        external_id = external_id or f"local-{uuid.uuid4().hex}"
        if records.get_user_by_external_id(db, external_id):
            raise ConflictError("External identity already registered")

        user = records.create_user(
            db,
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            external_id=external_id
        )
        logger.info(f"Registered user {user.id} ({username})")
        return user

    def authenticate(self, db: Session, username: str, password: str) -> User:
        """
        Check a username/password pair

        Raises:
            AuthenticationError: Unknown user or wrong password
        """
        user = records.get_user_by_username(db, username)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Incorrect username or password")
        return user
