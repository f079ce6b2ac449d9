"""
Operation result schemas.

Models returned by services (not persisted by Claude Code).
"""
