import enum
import logging
from dataclasses import dataclass
from typing import Any
from tubely.core.errors import InvalidDimensionsError, NoStreamsError, ProbeParseError
from tubely.platform.ports.media_tool import MediaToolPort

log = logging.getLogger(__name__)

LANDSCAPE_RATIO = 1.777
PORTRAIT_RATIO = 0.5625
RATIO_TOLERANCE = 0.2


class AspectClassification(str, enum.Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    OTHER = "other"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]

_PREFIXES = {
    AspectClassification.LANDSCAPE: "landscape",
    AspectClassification.PORTRAIT: "portrait",
    AspectClassification.OTHER: "other",
}


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int


def _check_dimensions(width: Any, height: Any) -> None:
    for name, v in (("width", width), ("height", height)):
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            raise InvalidDimensionsError(f"invalid {name} {v!r}: must be a positive integer")


def classify(width: int, height: int) -> AspectClassification:
    """Tolerance-band aspect classification.

    Near-widescreen and near-portrait encodes (within 0.2 of 16:9 or 9:16)
    land in those buckets; everything else is ``other``.
    """
    _check_dimensions(width, height)
    ratio = width / height
    if abs(ratio - LANDSCAPE_RATIO) < RATIO_TOLERANCE:
        return AspectClassification.LANDSCAPE
    if abs(ratio - PORTRAIT_RATIO) < RATIO_TOLERANCE:
        return AspectClassification.PORTRAIT
    return AspectClassification.OTHER


class MediaProber:
    def __init__(self, tool: MediaToolPort):
        self.tool = tool

    def probe(self, path: str) -> Dimensions:
        data = self.tool.inspect(path)
        streams = data.get("streams")
        if streams is None:
            streams = []
        if not isinstance(streams, list):
            raise ProbeParseError("ffprobe output has no usable streams list")
        if not streams:
            raise NoStreamsError("No video streams found")

        # audio and data streams carry no dimensions; use the first one that does
        for stream in streams:
            if isinstance(stream, dict) and "width" in stream and "height" in stream:
                width, height = stream["width"], stream["height"]
                _check_dimensions(width, height)
                log.debug("probed %s: %sx%s", path, width, height)
                return Dimensions(width=width, height=height)
        raise NoStreamsError("No video streams found")

    def classify(self, path: str) -> AspectClassification:
        dims = self.probe(path)
        return classify(dims.width, dims.height)
