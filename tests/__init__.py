"""
Test Suite
==========

Unit and integration tests for the countdown PNG server.
"""
