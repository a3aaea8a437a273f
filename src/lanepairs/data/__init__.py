"""City directory access."""
