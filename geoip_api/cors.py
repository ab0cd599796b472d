"""
Cross-origin request checks for GET responses
"""

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from .schemas.options import CorsOptions

logger = logging.getLogger(__name__)

# Schemes with a network origin and their default ports
DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "ws": 80,
    "wss": 443,
    "ftp": 21,
}


def url_origin(url: str) -> str:
    """
    Reduce a URL to its origin, e.g. "https://example.com:8443"

    Raises:
        ValueError: if the URL has no scheme, no host, an invalid port,
            or a scheme without a network origin
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise ValueError(f"Unsupported or missing URL scheme: {url}")

    host = parts.hostname
    if not host:
        raise ValueError(f"Missing host: {url}")
    if ":" in host:
        host = f"[{host}]"

    # .port raises ValueError when out of range or not numeric
    port = parts.port
    if port is None or port == DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


class CorsMatcher:
    """Allowed origin list and/or RegEx for cross-origin requests"""

    def __init__(self, options: CorsOptions):
        self._origins = self.sanitize_origins(options.origins)
        self._origin_regex = self.parse_origin_regex(options.origin_regex)

    @property
    def origins(self) -> Optional[List[str]]:
        return self._origins

    @property
    def origin_regex(self) -> Optional[re.Pattern]:
        return self._origin_regex

    def sanitize_origins(self, origins: Optional[List[str]]) -> Optional[List[str]]:
        """
        Validate URL format of each origin and reduce it to scheme://host:port

        Returns:
            The sanitized origins, or None when no valid origin remains
        """
        if not isinstance(origins, list):
            return None

        sanitized = []
        for origin in origins:
            origin = origin.strip() if isinstance(origin, str) else ""
            if not origin:
                continue
            try:
                sanitized.append(url_origin(origin))
            except ValueError as e:
                logger.error(f"Invalid origin {origin}: {e}")

        return sanitized or None

    def set_origins(self, origins: Optional[List[str]]) -> None:
        self._origins = self.sanitize_origins(origins)

    def parse_origin_regex(self, origin_regex: Any) -> Optional[re.Pattern]:
        """Compile (if necessary) the case-insensitive origin RegEx"""
        if isinstance(origin_regex, str):
            try:
                return re.compile(origin_regex, re.IGNORECASE)
            except re.error as e:
                logger.error(f"Failed to compile origin RegEx {origin_regex!r}: {e}")
        elif isinstance(origin_regex, re.Pattern):
            return origin_regex

        return None

    def set_origin_regex(self, origin_regex: Any) -> None:
        self._origin_regex = self.parse_origin_regex(origin_regex)

    def is_cors_origin(self, origin: Optional[str]) -> bool:
        """Check whether origin (the request Origin header) is allowed"""
        if not origin:
            return False
        if self._origins is not None and origin in self._origins:
            return True
        return self._origin_regex is not None and self._origin_regex.search(origin) is not None

    def get_cors_headers(self, origin: Optional[str] = None) -> Optional[Dict[str, str]]:
        """CORS headers for origin, or None when the origin is not allowed"""
        if origin and self.is_cors_origin(origin):
            return {"Access-Control-Allow-Origin": origin}
        return None
