"""Concierge web API (FastAPI)."""
