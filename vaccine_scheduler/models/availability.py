from sqlalchemy import Column, String, Date, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from ..core.database import Base

class Availability(Base):
    """One caregiver's openness for a single appointment on one date."""
    __tablename__ = "availabilities"
    
    time = Column(Date, primary_key=True)
    username = Column(String(255), ForeignKey("caregivers.username"), primary_key=True)
    available = Column(Boolean, nullable=False, default=True, index=True)
    
    # Relationships
    caregiver = relationship("Caregiver", back_populates="availabilities")
    
    def __repr__(self):
        return f"<Availability(username='{self.username}', time='{self.time}', available={self.available})>"
