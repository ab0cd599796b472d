"""
IP2Location BIN database reader with optional ISO 3166-2 subdivision CSV

The BIN format stores region names only. Subdivision codes come from the
IP2Location ISO 3166-2 CSV (columns: country_code, subdivision_name, code).
"""

import csv
import logging
import struct
from typing import Any, Dict, Optional, Tuple

import IP2Location

from ..schemas.options import IP2LocationOptions
from .base import DatabaseLoadError, DbInterface

logger = logging.getLogger(__name__)

# Values the library uses in place of real data
NOT_FOUND = "-"
PLACEHOLDER_PREFIXES = (
    "This parameter is unavailable",
    "INVALID IP ADDRESS",
    "IPV6 ADDRESS MISSING IN IPV4 BIN",
    "IPV4 ADDRESS MISSING IN IPV6 BIN",
    "MISSING FILE",
    "INVALID BIN DATABASE",
)


def _is_placeholder(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and (value == NOT_FOUND or value.startswith(PLACEHOLDER_PREFIXES))


def load_subdivision_csv(path: str) -> Dict[Tuple[str, str], str]:
    """
    Load the ISO 3166-2 subdivision CSV

    Returns:
        (country_code, subdivision_name) -> subdivision code without the
        country prefix, e.g. ("US", "California") -> "CA"
    """
    subdivisions: Dict[Tuple[str, str], str] = {}
    with open(path, "r", encoding="utf-8", newline="") as f:
        for row in csv.reader(f):
            if len(row) < 3:
                continue
            country, name, code = (cell.strip() for cell in row[:3])
            # Header row
            if code.lower() == "code":
                continue
            if not country or not name or not code:
                continue
            # "US-CA" -> "CA"
            subdivision = code.split("-", 1)[1] if "-" in code else code
            subdivisions[(country.upper(), name.lower())] = subdivision
    return subdivisions


class IP2LocationDb(DbInterface):
    """Lookups against an IP2Location .BIN database"""

    def __init__(self, options: IP2LocationOptions):
        super().__init__("ip2location")
        self.db_path = options.db_path
        self.subdivision_csv_path = options.subdivision_csv_path

        try:
            self._reader = IP2Location.IP2Location(self.db_path)
        except (OSError, ValueError, struct.error) as e:
            raise DatabaseLoadError(f"Failed to load IP2Location database {self.db_path}: {e}") from e

        self._subdivisions: Dict[Tuple[str, str], str] = {}
        if self.subdivision_csv_path:
            try:
                self._subdivisions = load_subdivision_csv(self.subdivision_csv_path)
            except (OSError, csv.Error, UnicodeDecodeError) as e:
                raise DatabaseLoadError(
                    f"Failed to load IP2Location subdivision CSV {self.subdivision_csv_path}: {e}"
                ) from e

        logger.info("IP2Location database loaded", extra={
            "db_path": self.db_path,
            "subdivisions": len(self._subdivisions),
        })

    def _subdivision(self, country: str, region: Any) -> Optional[str]:
        if _is_placeholder(region) or not isinstance(region, str):
            return None
        return self._subdivisions.get((country.upper(), region.strip().lower()))

    async def get(self, ip: str) -> Optional[Dict[str, Any]]:
        try:
            rec = self._reader.get_all(ip)
        except ValueError as e:
            logger.debug(f"IP2Location lookup failed for {ip}: {e}")
            return None
        if rec is None:
            return None

        record = {k: v for k, v in vars(rec).items() if not _is_placeholder(v)}
        country = record.get("country_short")
        if not isinstance(country, str) or not country:
            return None

        subdivision = self._subdivision(country, record.get("region"))
        if subdivision:
            record["subdivision"] = subdivision
        return record

    def get_string_value(self, record: Optional[Dict[str, Any]], field: str) -> Optional[str]:
        if not record:
            return None

        if field == "country":
            value = record.get("country_short")
        elif field == "subdivision":
            value = record.get("subdivision")
        else:
            return None

        return value if isinstance(value, str) and value else None

    def close(self) -> None:
        self._reader.close()
