"""clipforge: media-transcoding orchestration for clip export."""

__version__ = "0.1.0"
