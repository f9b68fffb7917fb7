"""
Outbound request augmentation.

Injects the client marker fields so the backend can attribute calls to
this client type.
"""
import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from .types import DEFAULT_MARKER, RequestDescriptor


logger = logging.getLogger(__name__)


def augment_request(
    descriptor: RequestDescriptor,
    marker: Optional[Mapping[str, Any]] = None,
) -> RequestDescriptor:
    """
    Return a copy of the descriptor carrying the marker fields.

    - GET/DELETE: marker merged into query params
    - POST/PUT/PATCH: marker merged into a mapping body, or becomes the body
      when there is none; a non-mapping body is left untouched

    Args:
        descriptor: Request after wire-convention conversion
        marker: Fields to inject. Default: {"mcp_request": True}

    Returns:
        New descriptor; the input is not modified
    """
    fields = dict(DEFAULT_MARKER if marker is None else marker)
    if not fields:
        return descriptor

    if descriptor.is_read:
        return replace(
            descriptor,
            query_params={**dict(descriptor.query_params or {}), **fields},
        )

    if descriptor.is_write:
        body = descriptor.body
        if body is None:
            return replace(descriptor, body=fields)
        if isinstance(body, Mapping):
            return replace(descriptor, body={**dict(body), **fields})
        logger.debug(
            f"augment_request: {descriptor.verb} {descriptor.path} has a "
            f"{type(body).__name__} body, marker not added"
        )

    return descriptor
