"""Business services for the membership queue engine."""
