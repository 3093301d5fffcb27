"""
Tests for notifications app.

This package contains test modules for:
- test_services.py: BillingEmailService rendering and enqueueing
- test_tasks.py: Email delivery task and its retries

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_tasks.py
"""
