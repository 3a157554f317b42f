"""
Cache storage models: stored response snapshots.
"""

import base64
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx


@dataclass(frozen=True)
class CachedResponse:
    """
    Immutable snapshot of an HTTP response as stored in a cache partition.

    The body holds the raw bytes as received from the network, so any
    Content-Encoding stays valid when the snapshot is turned back into a
    response.

    Attributes:
        url: Absolute request URL (without fragment)
        method: Request method, always GET for stored entries
        statusCode: HTTP status code
        headers: Response headers as ordered (name, value) pairs
        body: Raw response body
        storedAt: Unix timestamp of the store operation
    """

    url: str
    method: str
    statusCode: int
    headers: List[Tuple[str, str]]
    body: bytes
    storedAt: float = field(default_factory=time.time)

    def toResponse(self, request: Optional[httpx.Request] = None) -> httpx.Response:
        """
        Build a fresh response from this snapshot.

        Every call returns a new response with its own stream, so several
        consumers can each read a full body.

        Args:
            request: Request to attach to the response

        Returns:
            httpx.Response: Unread response backed by the snapshot body
        """
        return httpx.Response(
            status_code=self.statusCode,
            headers=self.headers,
            stream=httpx.ByteStream(self.body),
            request=request,
        )

    def toDict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "url": self.url,
            "method": self.method,
            "statusCode": self.statusCode,
            "headers": [list(pair) for pair in self.headers],
            "body": base64.b64encode(self.body).decode("ascii"),
            "storedAt": self.storedAt,
        }

    @classmethod
    def fromDict(cls, data: Dict[str, Any]) -> "CachedResponse":
        """
        Restore a snapshot from the dict produced by toDict().

        Raises:
            KeyError: If a required field is missing
            ValueError: If the body is not valid base64
        """
        return cls(
            url=data["url"],
            method=data.get("method", "GET"),
            statusCode=int(data["statusCode"]),
            headers=[(str(name), str(value)) for name, value in data.get("headers", [])],
            body=base64.b64decode(data.get("body", ""), validate=True),
            storedAt=float(data.get("storedAt", 0.0)),
        )
