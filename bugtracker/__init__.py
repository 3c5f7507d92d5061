"""Bug Tracker backend package."""
