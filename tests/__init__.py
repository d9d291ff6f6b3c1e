"""
Test suite for the Vaccine Scheduler.

Contains unit and integration tests for the reservation engine, the
credential store, the command line and the HTTP API.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
