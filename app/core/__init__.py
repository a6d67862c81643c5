"""Core configuration, heuristics vocabulary and error types."""
