from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text, Numeric
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Practitioner(Base):
    __tablename__ = "practitioners"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Personal information
    full_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    specialization = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)

    # Billing
    consultation_fee = Column(Numeric(10, 2), nullable=False, default=0)

    # Only active practitioners can be booked
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="practitioner")
    appointments = relationship("Appointment", back_populates="practitioner")

    def __repr__(self):
        return f"<Practitioner(id={self.id}, name='{self.full_name}', specialization='{self.specialization}')>"
