"""
claude-session-manager - discover, enrich, search and clean up Claude Code sessions.
"""

__version__ = '0.1.0'
