"""
Rendering Module
===============

HTML generation and PNG capture with browser automation.

Components:
- html_generator: Countdown computation and timer markup
- engine: Long-lived Playwright browser and page
- frame_cache: Last successfully rendered frame
- one_shot: On-demand single frame renders
- templates: HTML template for the timer
"""
