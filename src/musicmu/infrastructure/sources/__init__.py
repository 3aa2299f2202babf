from .ytdlp import YtDlpMetadataSource
from .ytmusic import YTMusicMetadataSource, YTMusicProvider, YTMusicSearchSource

__all__ = [
    "YTMusicMetadataSource",
    "YTMusicProvider",
    "YTMusicSearchSource",
    "YtDlpMetadataSource",
]
