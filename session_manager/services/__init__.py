"""Service layer for session discovery, enrichment and deletion."""

from session_manager.services.delete import SessionDeleteService
from session_manager.services.discovery import SessionDiscoveryService
from session_manager.services.enrich import SessionEnrichService
from session_manager.services.labels import get_session_label
from session_manager.services.parser import SessionLogParserService, parse_session_log
from session_manager.services.search import search_sessions

__all__ = [
    'SessionDeleteService',
    'SessionDiscoveryService',
    'SessionEnrichService',
    'SessionLogParserService',
    'get_session_label',
    'parse_session_log',
    'search_sessions',
]
