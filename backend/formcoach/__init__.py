"""Real-time exercise form feedback."""

__version__ = "1.0.0"
