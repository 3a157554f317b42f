"""
Request router: assigns every intercepted request to exactly one traffic class.
"""

from typing import Optional

import httpx

from .types import TrafficClass, WorkerConfig

NETWORK_SCHEMES = frozenset(["http", "https"])
STATIC_DESTINATIONS = frozenset(["script", "style", "image", "font"])

# Request extensions carrying fetch metadata; headers are the fallback
DESTINATION_EXTENSION = "destination"
MODE_EXTENSION = "mode"


def getDestination(request: httpx.Request) -> Optional[str]:
    """
    Get the request destination (script, style, image, document, ...).

    Read from request.extensions["destination"], else the Sec-Fetch-Dest header.
    """
    destination = request.extensions.get(DESTINATION_EXTENSION) or request.headers.get("Sec-Fetch-Dest")
    return destination.lower() if destination else None


def getMode(request: httpx.Request) -> Optional[str]:
    """
    Get the request mode (navigate, cors, no-cors, ...).

    Read from request.extensions["mode"], else the Sec-Fetch-Mode header.
    """
    mode = request.extensions.get(MODE_EXTENSION) or request.headers.get("Sec-Fetch-Mode")
    return mode.lower() if mode else None


def classifyRequest(request: httpx.Request, config: WorkerConfig) -> TrafficClass:
    """
    Classify a request, first match wins.

    Order:
    1. Non-network scheme -> IGNORED
    2. Path under the API prefix -> API
    3. Destination script/style/image/font, or path under the assets prefix -> STATIC_ASSET
    4. Navigation mode -> NAVIGATION
    5. Anything else -> OTHER

    Pure function of the request metadata; no state is kept between calls.

    Args:
        request: Request to classify
        config: Worker configuration holding the path prefixes

    Returns:
        TrafficClass: The single class for this request
    """
    url = request.url
    if url.scheme not in NETWORK_SCHEMES:
        return TrafficClass.IGNORED

    path = url.path
    if path.startswith(config.apiPrefix):
        return TrafficClass.API

    if getDestination(request) in STATIC_DESTINATIONS or path.startswith(config.assetsPrefix):
        return TrafficClass.STATIC_ASSET

    if getMode(request) == "navigate":
        return TrafficClass.NAVIGATION

    return TrafficClass.OTHER
