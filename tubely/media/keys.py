import base64
import secrets

ASSET_ID_BYTES = 32

def media_type_to_ext(media_type: str) -> str:
    parts = media_type.split("/")
    if len(parts) != 2:
        return ".bin"
    return "." + parts[1]

def generate_key(media_type: str) -> str:
    """Random, URL-safe object name carrying the extension of ``media_type``.

    ``video/mp4`` -> ``<44 url-safe chars>.mp4``; anything that is not
    ``type/subtype`` gets ``.bin``.
    """
    asset_id = base64.urlsafe_b64encode(secrets.token_bytes(ASSET_ID_BYTES)).decode("ascii")
    return f"{asset_id}{media_type_to_ext(media_type)}"

def prefixed_key(prefix: str, media_type: str) -> str:
    return f"{prefix}/{generate_key(media_type)}"
