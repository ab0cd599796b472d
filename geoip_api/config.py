"""
Configuration module for the GeoIP Web API

Defaults live in the pydantic models under ``geoip_api.schemas``. A user JSON
config is overlaid onto them field by field; a field that fails validation
keeps its default value.
"""

import json
import math
import os
import re
from typing import Any, Dict, List, Optional

from .schemas.options import (
    LOG_LEVEL_DEBUG,
    LOG_LEVEL_OFF,
    AppOptions,
    DbOptions,
    DbProvider,
)
from .utils import expand_tilde_path

# Environment configuration
CONFIG_PATH = os.getenv("GEOIP_API_CONFIG", "")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")
LOGGING_CONFIG = os.getenv("LOGGING_CONFIG", "LOGGING.yaml")
HOST = os.getenv("GEOIP_API_HOST", "0.0.0.0")

DEFAULT_PATH = "/"
MAX_PORT = 65535


def default_options() -> AppOptions:
    """Get default options"""
    # Suggested headers for AMP-GEO fallback API:
    # https://github.com/ampproject/amphtml/blob/main/docs/spec/amp-framework-hosting.md
    return AppOptions()


def _as_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _as_number(value: Any) -> Optional[float]:
    # bool is an int subclass, but true/false are not numbers in JSON
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _as_trimmed_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _trimmed_strings(values: List[Any]) -> List[str]:
    return [s for s in (_as_trimmed_str(v) for v in values) if s]


def overlay_options(unsafe_src: Any = None) -> AppOptions:
    """
    Safely overlay values in default options with user options

    Args:
        unsafe_src: Parsed JSON config, of any shape

    Returns:
        Default options with every valid user value applied
    """
    target = default_options()
    src = _as_dict(unsafe_src)
    if src is None:
        return target

    # Log level
    log_level = _as_number(src.get("logLevel"))
    if log_level is not None and LOG_LEVEL_OFF <= log_level <= LOG_LEVEL_DEBUG:
        target.log_level = math.floor(log_level)

    # Only set HTTP server port if a valid value is available
    port = _as_number(src.get("port"))
    if port is not None and 0 <= port <= MAX_PORT:
        target.port = math.floor(port)

    # Enabled outputs
    enabled_outputs = _as_dict(src.get("enabledOutputs"))
    if enabled_outputs is not None:
        for output in type(target.enabled_outputs).model_fields:
            value = enabled_outputs.get(output)
            if isinstance(value, bool):
                setattr(target.enabled_outputs, output, value)

    # Pretty JSON output
    if isinstance(src.get("prettyOutput"), bool):
        target.pretty_output = src["prettyOutput"]

    # GET headers
    get_headers = _as_dict(src.get("getHeaders"))
    if get_headers is not None:
        target.get_headers = {}

        # Only allow string values, or None which indicates that a header
        # should be removed (if possible). Retain only the last definition
        # of a header if multiple exist with distinct cases, keeping the
        # user's original casing of the header name.
        for key, value in get_headers.items():
            if not (isinstance(value, str) or value is None):
                continue
            duplicate = next((h for h in target.get_headers if h.lower() == key.lower()), None)
            if duplicate is not None:
                del target.get_headers[duplicate]
            target.get_headers[key] = value

    # Route patterns are only checked for being non-blank strings
    get_paths = src.get("getPaths")
    if isinstance(get_paths, list):
        target.get_paths = _trimmed_strings(get_paths)
        # Ensure at least one path is available
        if not target.get_paths:
            target.get_paths.append(DEFAULT_PATH)

    # CORS properties are None by default, so only modify if good values are found
    cors = _as_dict(src.get("cors"))
    if cors is not None:
        origins = cors.get("origins")
        if isinstance(origins, list):
            # URL validity is checked by CorsMatcher
            target.cors.origins = _trimmed_strings(origins)

        origin_regex = cors.get("originRegEx")
        if (isinstance(origin_regex, str) and origin_regex) or isinstance(origin_regex, re.Pattern):
            target.cors.origin_regex = origin_regex

    # MaxMind properties
    maxmind_defined = False
    maxmind = _as_dict(src.get("maxmind"))
    if maxmind is not None:
        db_path = _as_trimmed_str(maxmind.get("dbPath"))
        if db_path:
            target.maxmind.db_path = expand_tilde_path(db_path)
            maxmind_defined = True

    # IP2Location properties
    if not maxmind_defined:
        ip2location = _as_dict(src.get("ip2location"))
        if ip2location is not None:
            db_path = _as_trimmed_str(ip2location.get("dbPath"))
            if db_path:
                target.ip2location.db_path = expand_tilde_path(db_path)
                target.maxmind.db_path = ""
                # Subdivision support requires a separate CSV database
                csv_path = _as_trimmed_str(ip2location.get("subdivisionCsvPath"))
                if csv_path:
                    target.ip2location.subdivision_csv_path = expand_tilde_path(csv_path)

    return target


def load_json_options(path: str) -> AppOptions:
    """
    Import custom configuration from a JSON file

    Raises:
        OSError: if the file cannot be read
        json.JSONDecodeError: if the file is not valid JSON
    """
    if not path or not path.strip():
        return default_options()

    with open(path, "r", encoding="utf-8") as f:
        return overlay_options(json.load(f))


def get_db_options(options: AppOptions) -> DbOptions:
    """Select the database provider from application options"""
    if options.maxmind.db_path:
        return DbOptions(provider=DbProvider.MAXMIND, maxmind=options.maxmind)
    if options.ip2location.db_path:
        return DbOptions(provider=DbProvider.IP2LOCATION, ip2location=options.ip2location)
    return DbOptions()
