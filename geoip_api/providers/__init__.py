from .base import DatabaseLoadError, DbInterface
from .ip2location import IP2LocationDb
from .maxmind import MaxMindDb

__all__ = ["DatabaseLoadError", "DbInterface", "IP2LocationDb", "MaxMindDb"]
