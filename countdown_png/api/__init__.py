"""
HTTP API
========

FastAPI application exposing the live countdown image and one-shot renders.
"""
