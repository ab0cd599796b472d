from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class LookupResponse(BaseModel):
    error: Optional[str] = None
    # Sparse, in canonical output order; see GeoDb.geo_response
    response: Dict[str, Any] = Field(default_factory=dict)
