import os
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator

PREFIX = "RETROHTTPX_"

_http_url = TypeAdapter(HttpUrl)


class ClientConfig(BaseModel):
    """Base configuration shared by every operation of a client.

    The base URL and headers sit beneath each descriptor's own state: the
    URL of a resolved request is joined onto ``base_url`` and its headers
    override same-named ``headers``.
    """

    model_config = ConfigDict(extra="forbid")

    base_url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = 30.0
    follow_redirects: bool = True
    max_retries: int = Field(default=0, ge=0)

    @field_validator("base_url", mode="before")
    @classmethod
    def validate_base_url(cls, value: Optional[str]) -> str:
        if not value:
            return ""
        # rejects relative or scheme-less values early
        _http_url.validate_python(value)
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientConfig":
        """Build a configuration from ``RETROHTTPX_*`` environment variables.

        A ``.env`` file in the working directory is loaded first. Keyword
        arguments take precedence over the environment.
        """
        load_dotenv()

        values: dict[str, Any] = {}
        base_url = os.getenv(f"{PREFIX}BASE_URL")
        if base_url:
            values["base_url"] = base_url
        timeout = os.getenv(f"{PREFIX}TIMEOUT")
        if timeout:
            values["timeout"] = timeout
        max_retries = os.getenv(f"{PREFIX}MAX_RETRIES")
        if max_retries:
            values["max_retries"] = max_retries

        values.update(overrides)
        return cls.model_validate(values)

    def merged(self, **overrides: Any) -> "ClientConfig":
        """Return a copy with ``overrides`` applied; headers are merged."""
        values = self.model_dump()
        headers = overrides.pop("headers", None)
        values.update(overrides)
        if headers:
            values["headers"] = {**self.headers, **headers}
        return type(self).model_validate(values)
