from typing import Any, Protocol, runtime_checkable

@runtime_checkable
class MediaToolPort(Protocol):
    """Black-box media toolchain, one local file in, structured data or a new file out."""

    def inspect(self, path: str) -> dict[str, Any]: ...

    def remux(self, src: str, dest: str) -> None: ...
