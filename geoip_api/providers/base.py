"""
Base database interface shared by the MaxMind and IP2Location readers
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

# Fields get_string_value() knows how to normalize
STRING_FIELDS = ("country", "subdivision")


class DatabaseLoadError(RuntimeError):
    """A database could not be opened; fatal at startup"""


class DbInterface(ABC):
    """Read-only geolocation database opened once for the process lifetime"""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def get(self, ip: str) -> Optional[Dict[str, Any]]:
        """Lookup the database record for an IP address, None if absent"""

    @abstractmethod
    def get_string_value(self, record: Optional[Dict[str, Any]], field: str) -> Optional[str]:
        """Normalize a named field ("country" or "subdivision") out of a record"""

    def close(self) -> None:
        """Release the database handle"""
