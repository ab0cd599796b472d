"""
Lookup orchestration: validate the IP, query the active database, shape the response
"""

import ipaddress
import logging
from typing import Any, Dict, List, Optional

from .providers import DatabaseLoadError, DbInterface, IP2LocationDb, MaxMindDb
from .schemas.lookup import LookupResponse
from .schemas.options import DbOptions, DbProvider

logger = logging.getLogger(__name__)

# Canonical response key order, independent of config declaration order
OUTPUT_ORDER = ("ip", "ip_version", "country", "subdivision", "data")

# Outputs that never need a database
IP_OUTPUTS = ("ip", "ip_version")


def ip_version(ip: str) -> int:
    """4 or 6 for a valid IP address, 0 otherwise"""
    try:
        return ipaddress.ip_address(ip).version
    except ValueError:
        return 0


class GeoDb:
    """Owns the database reader and answers lookups for enabled outputs"""

    def __init__(self, db_options: DbOptions, enabled_outputs: List[str],
                 db_interface: Optional[DbInterface] = None):
        self.provider = db_options.provider
        self.enabled_outputs = [o for o in OUTPUT_ORDER if o in enabled_outputs]
        self.db_interface = db_interface or self._get_db_interface(db_options)

    @staticmethod
    def _get_db_interface(db_options: DbOptions) -> DbInterface:
        """Identify and construct the database interface"""
        if db_options.provider == DbProvider.MAXMIND:
            if db_options.maxmind is None:
                raise DatabaseLoadError("MaxMind database indicated but options not available")
            return MaxMindDb(db_options.maxmind)

        if db_options.provider == DbProvider.IP2LOCATION:
            if db_options.ip2location is None:
                raise DatabaseLoadError("IP2Location database indicated but options not available")
            return IP2LocationDb(db_options.ip2location)

        raise DatabaseLoadError("Could not identify a database to load")

    @property
    def is_db_needed(self) -> bool:
        return any(o not in IP_OUTPUTS for o in self.enabled_outputs)

    async def lookup(self, ip: str) -> LookupResponse:
        """
        Get the shaped response for ip

        Never raises for bad input: an invalid IP or a database miss is
        reported in LookupResponse.error next to a best-effort response.
        """
        version = ip_version(ip)
        ret = LookupResponse(response=self.geo_response(None, ip, version))

        if not version:
            ret.error = f"Invalid IP: {ip}"
            return ret

        # No geolocation outputs requested; skip the database
        if not self.is_db_needed:
            return ret

        record = await self.db_interface.get(ip)
        if not record:
            ret.error = f"Failed to search database for IP: {ip}"
            return ret

        ret.response = self.geo_response(record, ip, version)
        return ret

    def geo_response(self, record: Optional[Dict[str, Any]], ip: Optional[str],
                     version: Optional[int]) -> Dict[str, Any]:
        """Build the sparse response for the enabled outputs"""
        ret: Dict[str, Any] = {}

        for output in self.enabled_outputs:
            if output == "ip":
                ret[output] = ip or ""
            elif output == "ip_version":
                ret[output] = version or 0
            elif output in ("country", "subdivision"):
                value = self.db_interface.get_string_value(record, output)
                if value is not None:
                    ret[output] = value
            elif output == "data" and record:
                ret[output] = record

        return ret

    def close(self) -> None:
        self.db_interface.close()
