"""Dwell confirmation state machine."""
