from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from ._methods import HttpMethod


class RequestOverride(BaseModel):
    """Explicit per-operation request configuration.

    Every field is optional. Entries supplied here take precedence over the
    shorthand defaults of a request decorator, and are themselves superseded
    by argument bindings at resolution time.
    """

    model_config = ConfigDict(extra="forbid")

    method: Optional[HttpMethod] = None
    url: Optional[str] = None
    params: Optional[dict[str, Any]] = None
    headers: Optional[dict[str, str]] = None
    body: Any = None
    timeout: Optional[Union[int, float]] = None

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("headers", mode="before")
    @classmethod
    def stringify_headers(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: str(item) for key, item in value.items()}
        return value
