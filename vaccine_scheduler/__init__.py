"""
Vaccine Scheduler

Reservation and inventory engine for vaccination appointments, with
credential verification for patients and caregivers, exposed as a FastAPI
service and a line-oriented command interface.
"""

__version__ = "1.0.0"
