"""Anti-scam page verdict service."""
