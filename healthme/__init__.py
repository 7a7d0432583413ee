"""
HealthMe Booking Service

A FastAPI-based backend for booking healthcare appointments, moving them
through their status lifecycle and linking clinical notes to completed
encounters.
"""

__version__ = "1.0.0"
