"""HTTP service for discovery runs."""
