"""HTTP API for the membership queue engine."""
