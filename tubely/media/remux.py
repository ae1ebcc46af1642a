import logging
import os
from tubely.core.errors import RemuxError, RemuxVerificationError
from tubely.platform.ports.media_tool import MediaToolPort

log = logging.getLogger(__name__)

PROCESSING_SUFFIX = ".processing"

def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("couldn't remove partial remux output %s: %s", path, e)

class MediaRemuxer:
    def __init__(self, tool: MediaToolPort):
        self.tool = tool

    def remux_for_streaming(self, path: str) -> str:
        """Move the moov atom to the front of ``path`` without re-encoding.

        Writes ``path + ".processing"`` and returns it. The caller owns both
        files afterwards; on failure the partial output is already gone.
        """
        new_path = path + PROCESSING_SUFFIX
        try:
            self.tool.remux(path, new_path)
            try:
                size = os.stat(new_path).st_size
            except OSError as e:
                raise RemuxVerificationError(f"could not stat processed video: {e}") from e
            if size < 1:
                raise RemuxVerificationError("processed video is empty")
        except RemuxError:
            _discard(new_path)
            raise
        return new_path
