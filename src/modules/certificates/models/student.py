from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from database import Base, utcnow


class Student(Base):
    __tablename__ = 'students'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=True, unique=True)
    roll_number = Column(String(32), unique=True, nullable=False)
    name = Column(String, nullable=False)
    branch = Column(String(64), nullable=True)
    semester = Column(Integer, nullable=True)
    email = Column(String, nullable=True)
    mobile_number = Column(String(32), nullable=True)
    computer_code = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="student")
    dues = relationship("Due", back_populates="student", cascade="all, delete-orphan")
    certificates = relationship("Certificate", back_populates="student")
