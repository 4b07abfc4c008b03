"""Host-side metric collector and report transport."""
