"""
Core Business Logic
==================

Core modules for countdown rendering.

Modules:
- rendering: Timer markup, the browser engine, frame cache and one-shot renders
- sessions: Per-viewer timer configuration with expiry
- scheduler: Fixed-cadence live frame rendering
"""
