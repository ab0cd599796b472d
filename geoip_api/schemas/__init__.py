from .lookup import LookupResponse
from .options import (
    AppOptions,
    CorsOptions,
    DbOptions,
    DbProvider,
    EnabledOutputs,
    IP2LocationOptions,
    MaxMindOptions,
)

__all__ = [
    "AppOptions",
    "CorsOptions",
    "DbOptions",
    "DbProvider",
    "EnabledOutputs",
    "IP2LocationOptions",
    "LookupResponse",
    "MaxMindOptions",
]
