"""
Response duplication helpers.

A network response body can be consumed once. Any code path that both
returns a response to its caller and stores it must first split it into
two independent copies, which is what this module does.
"""

import logging
from typing import List, Tuple

import httpx

from .models import CachedResponse
from .utils import normalizeUrl

logger = logging.getLogger(__name__)

# Headers describing the wire encoding, invalid once the body is decoded
WIRE_HEADERS = frozenset(["content-encoding", "content-length", "transfer-encoding"])


async def readRawBody(response: httpx.Response) -> Tuple[bytes, List[Tuple[str, str]]]:
    """
    Read the body of a response exactly once, keeping it in wire form when possible.

    Unread streaming responses are drained with aiter_raw(), so the bytes
    still match the Content-Encoding header. Responses already loaded into
    memory are replayed from their ByteStream; if the stream can't be
    replayed, the decoded content is used and the wire headers are dropped.

    Args:
        response: Response to read

    Returns:
        Tuple of (body bytes, headers that describe those bytes)
    """
    headers = list(response.headers.multi_items())

    if not response.is_stream_consumed:
        chunks = []
        async for chunk in response.aiter_raw():
            chunks.append(chunk)
        return b"".join(chunks), headers

    if isinstance(response.stream, httpx.ByteStream):
        chunks = []
        async for chunk in response.stream:
            chunks.append(chunk)
        return b"".join(chunks), headers

    logger.debug(f"Stream for {response.request.url} already consumed, using decoded content")
    headers = [(name, value) for name, value in headers if name.lower() not in WIRE_HEADERS]
    return response.content, headers


async def duplicateResponse(response: httpx.Response) -> Tuple[httpx.Response, CachedResponse]:
    """
    Split a response into a live copy for the caller and a snapshot to store.

    The original response is consumed. The returned response and the snapshot
    share no stream, so reading one never exhausts the other.

    Args:
        response: Response fresh from the network transport; must carry its request

    Returns:
        Tuple of (response to return to the caller, snapshot to persist)

    Raises:
        httpx.TransportError: If reading the body fails; the response is closed anyway
    """
    try:
        body, headers = await readRawBody(response)
    finally:
        await response.aclose()

    request = response.request
    snapshot = CachedResponse(
        url=normalizeUrl(request.url),
        method=request.method,
        statusCode=response.status_code,
        headers=headers,
        body=body,
    )
    liveResponse = httpx.Response(
        status_code=response.status_code,
        headers=headers,
        stream=httpx.ByteStream(body),
        request=request,
        extensions=dict(response.extensions),
    )
    logger.debug(f"Duplicated response for {snapshot.url} ({len(body)} bytes)")
    return liveResponse, snapshot
