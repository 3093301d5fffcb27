"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model and manager tests

Usage:
    pytest authentication/tests/
"""
