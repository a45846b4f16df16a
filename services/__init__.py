"""Session and interview record services."""
