"""
Data Models
===========

Pydantic models for timer configuration and API responses.
"""
