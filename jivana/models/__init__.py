"""
Database Models Package
"""
from jivana.models.user import User
from jivana.models.blood_test import BloodTest
from jivana.models.shared_test import SharedTest

__all__ = [
    "User",
    "BloodTest",
    "SharedTest"
]
