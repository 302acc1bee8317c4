"""
repotimeline - Branch timelines for hosted git repositories.

repotimeline pulls a repository's branches and recent commits from the
GitHub API into a local store, classifies them into timeline events and
lays them out as a "subway map": one lane per branch, one column per event,
orthogonal edges from parents to children.

Quick Start:
    import repotimeline

    # Create instance
    rt = repotimeline.RepoTimeline()

    # Ingest and classify
    repository_id = rt.ingest("octocat/hello-world")
    rt.synthesize(repository_id)

    # Lay out, optionally filtered
    events = rt.fetch_events(repository_id)
    layout = rt.layout(events, rt.layout_options(search="fix"))
    for node in layout.nodes:
        print(node.x, node.y, node.event.kind, node.event.message)

    # Ancestors of a commit
    lineage = rt.ancestors(layout, layout.nodes[-1].id)

Domain Objects:
    Repository, Branch, Commit - The ingested commit DAG
    TimelineEvent, EventKind - Classified timeline events
    Layout, LayoutNode, LayoutEdge, Lane - Positioned view

Services:
    GraphIngester - Hosting API to commit store
    EventSynthesizer - Commits to timeline events
    LayoutEngine - Events to lanes, nodes and routed edges
"""

__version__ = "0.1.0"

# High-level API
from .api import RepoTimeline, create

# Domain objects
from .domain import (
    Repository,
    Branch,
    Commit,
    EventKind,
    TimelineEvent,
    Highlight,
    Lane,
    Layout,
    LayoutEdge,
    LayoutNode,
    LayoutOptions,
)

# Services (for advanced use)
from .services import (
    GraphIngester,
    EventSynthesizer,
    LayoutEngine,
)

# Errors
from .exit_codes import (
    CommandError,
    InvalidReference,
    UpstreamUnavailable,
    RepositoryNotFound,
    MalformedEvent,
    PartialIngestionFailure,
    ConfigError,
)

# Configuration
from .config import load_config, save_config

__all__ = [
    # Version
    "__version__",
    # High-level API
    "RepoTimeline",
    "create",
    # Domain objects
    "Repository",
    "Branch",
    "Commit",
    "EventKind",
    "TimelineEvent",
    "Highlight",
    "Lane",
    "Layout",
    "LayoutEdge",
    "LayoutNode",
    "LayoutOptions",
    # Services
    "GraphIngester",
    "EventSynthesizer",
    "LayoutEngine",
    # Errors
    "CommandError",
    "InvalidReference",
    "UpstreamUnavailable",
    "RepositoryNotFound",
    "MalformedEvent",
    "PartialIngestionFailure",
    "ConfigError",
    # Configuration
    "load_config",
    "save_config",
]
