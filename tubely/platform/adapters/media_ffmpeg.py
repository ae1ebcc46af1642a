import json
import logging
import subprocess
from typing import Any
from tubely.core.errors import ProbeInvocationError, ProbeParseError, RemuxInvocationError
from tubely.platform.ports.media_tool import MediaToolPort

log = logging.getLogger("media.ffmpeg")

# chars of stderr kept in error messages
STDERR_TAIL = 2000

def _tail(stderr: bytes | None) -> str:
    return (stderr or b"").decode("utf-8", errors="replace")[-STDERR_TAIL:].strip()

class FfmpegMediaTool(MediaToolPort):
    def __init__(self, ffprobe_path: str = "ffprobe", ffmpeg_path: str = "ffmpeg"):
        self.ffprobe_path = ffprobe_path
        self.ffmpeg_path = ffmpeg_path

    def inspect(self, path: str) -> dict[str, Any]:
        cmd = [self.ffprobe_path, "-v", "error", "-print_format", "json", "-show_streams", path]
        log.debug("running %s", cmd)
        try:
            result = subprocess.run(cmd, capture_output=True, check=False)
        except OSError as e:
            raise ProbeInvocationError(f"could not run {self.ffprobe_path}: {e}") from e
        if result.returncode != 0:
            raise ProbeInvocationError(
                f"{self.ffprobe_path} exited with {result.returncode}: {_tail(result.stderr)}"
            )
        try:
            data = json.loads(result.stdout)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProbeParseError(f"couldn't parse ffprobe output: {e}") from e
        if not isinstance(data, dict):
            raise ProbeParseError(f"ffprobe output is a {type(data).__name__}, expected an object")
        return data

    def remux(self, src: str, dest: str) -> None:
        cmd = [
            self.ffmpeg_path, "-y",
            "-i", src,
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            dest,
        ]
        log.debug("running %s", cmd)
        try:
            result = subprocess.run(cmd, capture_output=True, check=False)
        except OSError as e:
            raise RemuxInvocationError(f"could not run {self.ffmpeg_path}: {e}") from e
        if result.returncode != 0:
            raise RemuxInvocationError(
                f"error processing video ({self.ffmpeg_path} exited with {result.returncode}): {_tail(result.stderr)}"
            )
