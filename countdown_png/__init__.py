"""
Countdown PNG Server
====================

Renders a countdown timer (days, hours, minutes, seconds) to a PNG image with a
headless browser and serves it over HTTP.

This package provides:
- A long-lived Playwright rendering engine with automatic crash recovery
- Per-viewer timer sessions with background expiry
- A fixed-cadence render scheduler backed by a last-frame cache
- FastAPI endpoints for the live image and one-shot renders
"""

__version__ = "1.0.0"
__author__ = "Countdown PNG Team"
