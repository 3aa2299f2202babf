from .sources import MetadataSourcePort, SearchSourcePort
from .strategy import ExtractionStrategyPort

__all__ = [
    "ExtractionStrategyPort",
    "MetadataSourcePort",
    "SearchSourcePort",
]
