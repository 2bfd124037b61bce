"""Tournament prize allocation engine."""
