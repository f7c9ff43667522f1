"""
User Model
"""
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime

from jivana.database import Base


class User(Base):
    __tablename__ = "users"

    # Primary key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Authentication
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    external_id = Column(String(255), unique=True, nullable=False, index=True)  # identity provider subject
    email = Column(String(255), unique=True, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "external_id": self.external_id,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
