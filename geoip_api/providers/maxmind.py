"""
MaxMind GeoIP2 / GeoLite2 database reader
"""

import logging
from typing import Any, Dict, Optional

import maxminddb

from ..schemas.options import MaxMindOptions
from .base import DatabaseLoadError, DbInterface

logger = logging.getLogger(__name__)


class MaxMindDb(DbInterface):
    """Lookups against a MaxMind .mmdb database"""

    def __init__(self, options: MaxMindOptions):
        super().__init__("maxmind")
        self.db_path = options.db_path
        try:
            self._reader = maxminddb.open_database(self.db_path)
        except (OSError, maxminddb.InvalidDatabaseError) as e:
            raise DatabaseLoadError(f"Failed to load MaxMind database {self.db_path}: {e}") from e

        logger.info("MaxMind database loaded", extra={
            "db_path": self.db_path,
            "db_type": self._reader.metadata().database_type,
        })

    async def get(self, ip: str) -> Optional[Dict[str, Any]]:
        try:
            record = self._reader.get(ip)
        except ValueError as e:
            logger.debug(f"MaxMind lookup failed for {ip}: {e}")
            return None
        return record if isinstance(record, dict) else None

    def get_string_value(self, record: Optional[Dict[str, Any]], field: str) -> Optional[str]:
        if not record:
            return None

        if field == "country":
            value = (record.get("country") or {}).get("iso_code")
        elif field == "subdivision":
            subdivisions = record.get("subdivisions") or [{}]
            value = subdivisions[0].get("iso_code")
        else:
            return None

        return value if isinstance(value, str) and value else None

    def close(self) -> None:
        self._reader.close()
