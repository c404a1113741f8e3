"""Frame-level segment analytics for SharpSend."""

from . import frame_bridge, segment_frames

__all__ = [
    "frame_bridge",
    "segment_frames",
]
