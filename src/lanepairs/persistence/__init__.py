"""Export persistence."""
