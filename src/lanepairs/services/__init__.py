"""Pairing, posting and verification services."""
