"""Gaze sample types, smoothing and simulated input."""
