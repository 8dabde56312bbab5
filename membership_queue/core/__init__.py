"""Core configuration, logging, persistence and exceptions."""
