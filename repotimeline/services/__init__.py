"""
Service layer for repotimeline.

Contains the pipeline stages that orchestrate domain objects and infrastructure:
- GraphIngester: Hosting API -> commit store
- EventSynthesizer: Commits -> classified timeline events
- LayoutEngine: Events -> positioned lanes, nodes and routed edges

Services are the primary API for commands to use.
"""

from .ingest_service import GraphIngester, IngestResult, parse_repo_reference
from .event_service import EventSynthesizer, classify_commit, synthesize_events
from .layout_service import LayoutEngine, filter_events, route_edge

__all__ = [
    'GraphIngester',
    'IngestResult',
    'parse_repo_reference',
    'EventSynthesizer',
    'classify_commit',
    'synthesize_events',
    'LayoutEngine',
    'filter_events',
    'route_edge',
]
