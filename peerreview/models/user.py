from sqlalchemy import Column, String, Boolean, Enum, Integer
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class UserRole(enum.Enum):
    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    __tablename__ = 'users'

    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)

    # A connected GitHub account is required to be picked as a peer reviewer
    github_username = Column(String(100))
    is_active = Column(Boolean, default=True)

    # Gamification
    xp = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)

    # Relationships
    submissions = relationship("Submission", back_populates="author", lazy='dynamic')
    assignments = relationship("Assignment", back_populates="reviewer", lazy='dynamic')
    reviews_given = relationship("Review", back_populates="reviewer", lazy='dynamic')
    notifications = relationship("Notification", back_populates="recipient", lazy='dynamic')

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
