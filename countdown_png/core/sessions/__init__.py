"""
Sessions Module
===============

In-memory timer sessions keyed by session id, expired in the background.
"""
