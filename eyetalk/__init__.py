"""
EyeTalk — gaze-dwell phrase board.

Smoothed eye-gaze samples → dual-criterion dwell confirmation → spoken phrase.
Designed for patients who communicate with their eyes alone.
"""

__version__ = "1.0.0"
__author__ = "EyeTalk Team"
