from typing import BinaryIO, Protocol, runtime_checkable

@runtime_checkable
class ObjectStoragePort(Protocol):
    def put_object(self, bucket: str, key: str, body: BinaryIO, content_type: str) -> None: ...

    def presign_download(self, bucket: str, key: str, expires_seconds: int) -> str: ...
