import os
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# Ordered from quietest to loudest, matching the "logLevel" config values
LOG_LEVEL_OFF = 0
LOG_LEVEL_ERROR = 1
LOG_LEVEL_WARN = 2
LOG_LEVEL_INFO = 3
LOG_LEVEL_DEBUG = 4


class DbProvider(IntEnum):
    UNKNOWN = 0
    MAXMIND = 1
    IP2LOCATION = 2


class EnabledOutputs(BaseModel):
    country: bool = Field(True, description="Enable country code output")
    subdivision: bool = Field(True, description="Enable subdivision code output")
    ip: bool = Field(False, description="Enable IP output")
    ip_version: bool = Field(False, description="Enable IP version output")
    data: bool = Field(False, description="Enable raw data output from DB lookup")

    def enabled_names(self) -> List[str]:
        return [name for name, enabled in self.model_dump().items() if enabled]


class CorsOptions(BaseModel):
    origins: Optional[List[str]] = Field(None, description="Allowed CORS origins")
    # str or compiled re.Pattern; compiled by CorsMatcher
    origin_regex: Optional[Any] = Field(None, description="RegEx test for allowed CORS origins")


class MaxMindOptions(BaseModel):
    db_path: str = Field(
        default_factory=lambda: os.path.join(os.getcwd(), "GeoLite2-Country.mmdb"),
        description="Filesystem path to MaxMind database",
    )


class IP2LocationOptions(BaseModel):
    db_path: str = Field("", description="Filesystem path to IP2Location database")
    subdivision_csv_path: str = Field("", description="Filesystem path to IP2Location subdivision CSV database")


class AppOptions(BaseModel):
    log_level: int = Field(LOG_LEVEL_INFO, description="0:Off, 1:Error, 2:Warn, 3:Info, 4:Debug")
    port: int = Field(3000, description="Port where HTTP server should listen")
    enabled_outputs: EnabledOutputs = Field(default_factory=EnabledOutputs)
    pretty_output: bool = Field(False, description="Pretty JSON output")
    get_headers: Dict[str, Optional[str]] = Field(default_factory=dict, description="HTTP response headers for GET requests")
    get_paths: List[str] = Field(default_factory=lambda: ["/", "/*"], description="Paths to match for GET requests")
    cors: CorsOptions = Field(default_factory=CorsOptions)
    maxmind: MaxMindOptions = Field(default_factory=MaxMindOptions)
    ip2location: IP2LocationOptions = Field(default_factory=IP2LocationOptions)


class DbOptions(BaseModel):
    provider: DbProvider = DbProvider.UNKNOWN
    maxmind: Optional[MaxMindOptions] = None
    ip2location: Optional[IP2LocationOptions] = None
