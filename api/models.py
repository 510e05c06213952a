"""
API response models for the library REST endpoints.

Only /health returns a Pydantic model. Every other route answers through the
{success, message, data?} envelope built in api/responses.py, and request
bodies are parsed by the request models in api/schemas.py through
api/validation.check().
"""

from pydantic import BaseModel, ConfigDict


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
