import logging
import os
import shutil
import tempfile
from contextlib import ExitStack
from typing import BinaryIO
from tubely.core.errors import StagingError

log = logging.getLogger(__name__)

SCRATCH_PREFIX = "tubely-upload-"

def discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("couldn't remove scratch file %s: %s", path, e)

class ScratchSpace:
    """Request-scoped scratch files.

    Every path staged or adopted here is removed when the block exits,
    whichever way it exits.
    """

    def __init__(self, directory: str | None = None):
        self.directory = directory
        self.paths: list[str] = []
        self._stack = ExitStack()

    def __enter__(self) -> "ScratchSpace":
        return self

    def __exit__(self, *exc_info) -> None:
        self._stack.close()

    def adopt(self, path: str) -> str:
        self.paths.append(path)
        self._stack.callback(discard, path)
        return path

    def stage(self, src: BinaryIO, suffix: str = "") -> str:
        if self.directory:
            os.makedirs(self.directory, exist_ok=True)
        try:
            tmp = tempfile.NamedTemporaryFile(prefix=SCRATCH_PREFIX, suffix=suffix, dir=self.directory, delete=False)
        except OSError as e:
            raise StagingError(f"couldn't create temp file: {e}") from e
        self.adopt(tmp.name)
        with tmp:
            try:
                shutil.copyfileobj(src, tmp)
            except OSError as e:
                raise StagingError(f"couldn't save upload to {tmp.name}: {e}") from e
        return tmp.name
