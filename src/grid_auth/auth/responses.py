"""
Error envelope helpers.

Responses follow the media API's envelope: an ``errorKey`` clients can
switch on, a human readable ``errorMessage`` and a list of ``links`` so
that clients can find their way back to a login page.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel


class Link(BaseModel):
    rel: str
    href: str


def respond(data: Any, links: Optional[list[Link]] = None, status_code: int = 200) -> JSONResponse:
    """Wrap ``data`` in the standard envelope."""
    content: dict[str, Any] = {"data": data}
    if links:
        content["links"] = [link.model_dump() for link in links]
    return JSONResponse(content=content, status_code=status_code)


def respond_error(
    status_code: int,
    error_key: str,
    error_message: str,
    links: Optional[list[Link]] = None
) -> JSONResponse:
    """
    Create standardized error response.

    Args:
        status_code: HTTP status code
        error_key: Error code for client handling
        error_message: Error message
        links: Optional links, typically a login link

    Returns:
        JSONResponse: Error response
    """
    content: dict[str, Any] = {
        "errorKey": error_key,
        "errorMessage": error_message
    }

    if links:
        content["links"] = [link.model_dump() for link in links]

    return JSONResponse(content=content, status_code=status_code)
