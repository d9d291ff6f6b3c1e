from sqlalchemy import Column, Integer, String, Date, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base

class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # one live appointment per caregiver slot
        UniqueConstraint("caregiver_name", "time", name="uq_appointments_caregiver_time"),
        # ids of canceled appointments are never handed out again
        {"sqlite_autoincrement": True},
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    time = Column(Date, nullable=False, index=True)
    
    # Relationships
    patient_name = Column(String(255), ForeignKey("patients.username"), nullable=False, index=True)
    caregiver_name = Column(String(255), ForeignKey("caregivers.username"), nullable=False, index=True)
    vaccine_name = Column(String(255), ForeignKey("vaccines.name"), nullable=False)
    
    patient = relationship("Patient", back_populates="appointments")
    caregiver = relationship("Caregiver", back_populates="appointments")
    
    def __repr__(self):
        return f"<Appointment(id={self.id}, patient='{self.patient_name}', caregiver='{self.caregiver_name}', date='{self.time}')>"
