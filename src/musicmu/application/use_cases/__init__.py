from .resolution_state import ResolutionState
from .stream_resolution import AdaptiveResolver
from .track_metadata import MetadataResolver
from .track_search import SearchService

__all__ = ["AdaptiveResolver", "MetadataResolver", "ResolutionState", "SearchService"]
