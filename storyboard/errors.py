"""
Error taxonomy and the HTTP boundary mapping.

Services raise these; routes never catch them. The handlers registered by
``register_error_handlers`` turn each kind into one plain-text response.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

logger = logging.getLogger(__name__)


class StoryboardError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(StoryboardError):
    """Missing or invalid configuration. Fatal at startup."""


class StoreError(StoryboardError):
    """A query or connection failed."""


class ValidationError(StoryboardError):
    status_code = 422


class CreatorNotFound(ValidationError):
    def __init__(self, creator_id: int):
        super().__init__(f'creator {creator_id} does not exist')
        self.creator_id = creator_id


class ConstraintViolation(ValidationError):
    """The store rejected a write on an integrity constraint."""


class AuthFailure(StoryboardError):
    status_code = 401


class RenderError(StoryboardError):
    pass


async def storyboard_error_handler(request: Request, exc: StoryboardError):
    if exc.status_code >= 500:
        logger.error({'msg': 'request_failed', 'path': request.url.path,
                      'error': type(exc).__name__, 'detail': exc.message})
        body = f'Something went wrong: {exc.message}'
    else:
        logger.info({'msg': 'request_rejected', 'path': request.url.path,
                     'error': type(exc).__name__, 'detail': exc.message})
        body = exc.message
    return PlainTextResponse(body, status_code=exc.status_code)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoryboardError, storyboard_error_handler)
