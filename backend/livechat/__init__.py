"""Live support chat backend."""
