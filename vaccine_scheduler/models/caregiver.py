from sqlalchemy import Column, String, LargeBinary, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Caregiver(Base):
    __tablename__ = "caregivers"
    
    username = Column(String(255), primary_key=True)
    
    # Credentials
    salt = Column(LargeBinary(16), nullable=False)
    password_hash = Column(String(255), nullable=False)
    
    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    
    # Relationships
    availabilities = relationship("Availability", back_populates="caregiver")
    appointments = relationship("Appointment", back_populates="caregiver")
    
    def __repr__(self):
        return f"<Caregiver(username='{self.username}')>"
