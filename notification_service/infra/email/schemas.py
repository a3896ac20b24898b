"""Email message model handed to providers."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class EmailMessage(BaseModel):
    """A rendered email ready for sending.

    Example:
        message = EmailMessage(
            to=["user@example.com"],
            subject="Welcome!",
            body_html="<h1>Welcome!</h1>",
        )
    """

    to: list[EmailStr] = Field(min_length=1, description="Recipients")
    from_email: EmailStr | None = Field(default=None, description="Sender address; provider default when unset")
    from_name: str | None = Field(default=None, max_length=100)
    subject: str = Field(default="", max_length=500)
    body_html: str = Field(description="HTML body")
    headers: dict[str, str] = Field(default_factory=dict, description="Additional email headers")
