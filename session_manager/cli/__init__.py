"""Command-line interface for claude-session-manager."""
