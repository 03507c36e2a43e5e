"""Check-in protocol services."""
