"""Configuration discovery, task engines, and structure reconstruction."""
