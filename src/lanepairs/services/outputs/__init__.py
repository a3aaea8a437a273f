"""Serialization of pair sequences into export artifacts."""
