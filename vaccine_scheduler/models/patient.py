from sqlalchemy import Column, String, LargeBinary, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Patient(Base):
    __tablename__ = "patients"
    
    username = Column(String(255), primary_key=True)
    
    # Credentials
    salt = Column(LargeBinary(16), nullable=False)
    password_hash = Column(String(255), nullable=False)
    
    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    
    # Relationships
    appointments = relationship("Appointment", back_populates="patient")
    
    def __repr__(self):
        return f"<Patient(username='{self.username}')>"
