from sqlalchemy import Column, String, Integer
from sqlalchemy.orm import relationship
from .base import BaseModel


class Project(BaseModel):
    __tablename__ = 'projects'

    title = Column(String(255), nullable=False)
    difficulty = Column(Integer, default=1, nullable=False)  # 1-5 scale

    submissions = relationship("Submission", back_populates="project", lazy='dynamic')
