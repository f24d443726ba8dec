"""
Test Utilities
==============

Shared fakes for tests.
"""
