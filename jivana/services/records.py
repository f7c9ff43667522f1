"""
Record Store - CRUD helpers for users, blood tests and shares

Every write is its own unit of work: it commits, and on failure rolls
back and raises RecordStoreError.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jivana.models import User, BloodTest, SharedTest
from jivana.utils.exceptions import ConflictError, NotFoundError, RecordStoreError

logger = logging.getLogger(__name__)


def _commit(db: Session, instance, operation: str):
    try:
        db.add(instance)
        db.commit()
        db.refresh(instance)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{operation} failed: {e}")
        raise RecordStoreError(f"{operation} failed", operation=operation)
    return instance


# ============================================================================
# USERS
# ============================================================================

def create_user(db: Session, username: str, email: str, password_hash: str, external_id: str) -> User:
    """Create new user"""
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        external_id=external_id
    )
    return _commit(db, user, "create_user")


def get_user(db: Session, user_id: int) -> Optional[User]:
    """Get user by ID"""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    """Get user by username"""
    return db.query(User).filter(User.username == username).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get user by email"""
    return db.query(User).filter(User.email == email).first()


def get_user_by_external_id(db: Session, external_id: str) -> Optional[User]:
    """Get user by identity provider subject"""
    return db.query(User).filter(User.external_id == external_id).first()


# ============================================================================
# BLOOD TESTS
# ============================================================================

def create_blood_test(
    db: Session,
    user_id: int,
    date_performed: datetime,
    file_key: str,
    results: Dict[str, Any]
) -> BloodTest:
    """Create a blood test without analysis"""
    test = BloodTest(
        user_id=user_id,
        date_performed=date_performed,
        file_key=file_key,
        results=dict(results)
    )
    return _commit(db, test, "create_blood_test")


def get_blood_test(db: Session, test_id: int) -> Optional[BloodTest]:
    """Get blood test by ID"""
    return db.query(BloodTest).filter(BloodTest.id == test_id).first()


def get_blood_tests_by_user(db: Session, user_id: int) -> List[BloodTest]:
    """Get all blood tests for a user, oldest first"""
    return db.query(BloodTest).filter(
        BloodTest.user_id == user_id
    ).order_by(BloodTest.date_performed.asc(), BloodTest.id.asc()).all()


def get_latest_blood_test(db: Session, user_id: int) -> Optional[BloodTest]:
    """Most recently performed test; ties go to the later upload"""
    return db.query(BloodTest).filter(
        BloodTest.user_id == user_id
    ).order_by(BloodTest.date_performed.desc(), BloodTest.id.desc()).first()


def attach_analysis(db: Session, test_id: int, analysis: Dict[str, Any]) -> BloodTest:
    """
    Set a test's analysis

    Args:
        db: Database session
        test_id: Blood test to update
        analysis: Analysis payload

    Returns:
        Updated blood test

    Raises:
        NotFoundError: Unknown test
        ConflictError: The test already has an analysis
    """
    test = get_blood_test(db, test_id)
    if not test:
        raise NotFoundError("Test not found", resource="blood_test", details={"id": test_id})
    if test.ai_analysis is not None:
        raise ConflictError("Test already has an analysis", details={"id": test_id})

    test.ai_analysis = dict(analysis)
    return _commit(db, test, "attach_analysis")


# ============================================================================
# SHARED TESTS
# ============================================================================

def create_shared_test(
    db: Session,
    blood_test_id: int,
    shared_by_id: int,
    shared_with_email: str,
    access_token: str
) -> SharedTest:
    """Create an active share grant"""
    shared = SharedTest(
        blood_test_id=blood_test_id,
        shared_by_id=shared_by_id,
        shared_with_email=shared_with_email,
        access_token=access_token,
        active=True
    )
    return _commit(db, shared, "create_shared_test")


def get_shared_test_by_token(db: Session, access_token: str) -> Optional[SharedTest]:
    """Get share grant by access token"""
    return db.query(SharedTest).filter(SharedTest.access_token == access_token).first()


def set_shared_test_active(db: Session, access_token: str, active: bool) -> SharedTest:
    """Flip a share grant's active flag"""
    shared = get_shared_test_by_token(db, access_token)
    if not shared:
        raise NotFoundError("Shared test not found", resource="shared_test")

    shared.active = active
    return _commit(db, shared, "set_shared_test_active")
