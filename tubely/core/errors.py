"""Error taxonomy for the upload pipeline and its collaborators.

Every failure a request can hit is a ``TubelyError`` subclass carrying the HTTP
status it maps to. Client-facing messages for 5xx errors stay generic; the
diagnostic goes to the log.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = logging.getLogger("tubely.errors")


class TubelyError(Exception):
    status_code: int = 500
    public_message: str = "An internal server error occurred."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        if message and self.status_code < 500:
            self.public_message = message


# 4xx

class BadRequestError(TubelyError):
    status_code = 400
    public_message = "Bad request"

class UnsupportedMediaTypeError(BadRequestError):
    public_message = "Unsupported media type"

class UnauthorizedError(TubelyError):
    status_code = 401
    public_message = "Unauthorized"

class MissingTokenError(UnauthorizedError):
    public_message = "Couldn't find JWT"

class InvalidTokenError(UnauthorizedError):
    public_message = "Couldn't validate JWT"

class ForbiddenError(TubelyError):
    status_code = 403
    public_message = "Insufficient rights to video"

class VideoNotFoundError(TubelyError):
    status_code = 404
    public_message = "Couldn't find video"

class PayloadTooLargeError(TubelyError):
    status_code = 413
    public_message = "Upload exceeds the maximum allowed size"


# 5xx

class VideoLookupError(TubelyError):
    public_message = "Couldn't find video"

class PersistenceError(TubelyError):
    public_message = "Couldn't update video"

class StagingError(TubelyError):
    public_message = "Couldn't save upload to disk"

class ProbeError(TubelyError):
    public_message = "Couldn't calculate aspect ratio"

class ProbeInvocationError(ProbeError):
    pass

class ProbeParseError(ProbeError):
    pass

class NoStreamsError(ProbeError):
    pass

class InvalidDimensionsError(ProbeError):
    pass

class RemuxError(TubelyError):
    public_message = "Couldn't process video"

class RemuxInvocationError(RemuxError):
    pass

class RemuxVerificationError(RemuxError):
    pass

class StorageUploadError(TubelyError):
    public_message = "Error uploading file to storage"

class AssetWriteError(TubelyError):
    public_message = "Couldn't save thumbnail"

class PresignError(TubelyError):
    public_message = "Couldn't create presigned URL"

class ReferenceFormatError(TubelyError):
    public_message = "Invalid stored video reference"


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(TubelyError)
    async def tubely_error_handler(request: Request, exc: TubelyError):
        if exc.status_code >= 500:
            log.error(
                "%s %s failed: %s: %s",
                request.method, request.url.path, type(exc).__name__, exc,
                exc_info=exc,
            )
        else:
            log.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred."},
        )
