"""Real-time messaging for a freelance marketplace."""

__version__ = "0.1.0"
