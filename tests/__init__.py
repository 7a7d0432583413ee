"""
Test suite for the HealthMe Booking Service.

Contains unit and integration tests for booking, status transitions and
clinical notes.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
