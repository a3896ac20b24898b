"""RFC 7807 error bodies (https://datatracker.ietf.org/doc/html/rfc7807)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetails(BaseModel):
    """Body of every non-2xx API response, served as ``application/problem+json``.

    Handlers may add extension members, e.g. ``userId`` on a missing preference.
    """

    type: str = Field(default="about:blank", description="Problem type slug, e.g. 'token-expired'")
    title: str
    status: int = Field(ge=100, le=599)
    detail: str | None = None
    instance: str | None = Field(default=None, description="Request path that produced the problem")

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "type": "not-found",
                "title": "Not Found",
                "status": 404,
                "detail": "No notification preferences for user 42",
                "instance": "/api/v1/users/42/preferences",
            }
        },
    )


class FieldError(BaseModel):
    field: str = Field(description="Dotted location, e.g. 'body.userIds'")
    message: str
    type: str


class ValidationProblemDetails(ProblemDetails):
    errors: list[FieldError] = Field(default_factory=list)
