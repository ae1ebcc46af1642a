from dataclasses import dataclass
from tubely.core.errors import ReferenceFormatError

LEGACY_DELIMITER = ","

@dataclass(frozen=True)
class StorageReference:
    """Durable location of one stored object: never a URL, never expires."""
    bucket: str
    key: str

    def encode(self) -> str:
        # the legacy "<bucket>,<key>" form cannot represent a bucket with a comma
        if LEGACY_DELIMITER in self.bucket:
            raise ReferenceFormatError(f"bucket {self.bucket!r} cannot be encoded: contains {LEGACY_DELIMITER!r}")
        return f"{self.bucket}{LEGACY_DELIMITER}{self.key}"

    @classmethod
    def decode(cls, value: str) -> "StorageReference":
        parts = value.split(LEGACY_DELIMITER, 1)
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ReferenceFormatError("Invalid video reference, expected format <bucket>,<key>")
        return cls(bucket=parts[0], key=parts[1])

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}"
