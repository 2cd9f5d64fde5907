"""Low-level access to the 42 Intra API."""
