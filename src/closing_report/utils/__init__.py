"""Text, date, amount and formula helpers."""
