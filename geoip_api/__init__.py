"""
GeoIP Web API: AMP-GEO compatible location lookups over HTTP
"""

__version__ = "1.1.2"
