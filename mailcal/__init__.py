"""mailcal: turn event details in an email into a calendar entry."""

__version__ = "0.1.0"
