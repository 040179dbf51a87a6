"""Muscle fatigue tracking and exercise relationship engine."""

__version__ = "0.1.0"
