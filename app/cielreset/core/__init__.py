"""Core planning, configuration and state for cielreset."""
