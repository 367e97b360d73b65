"""Request descriptors handed to the transport."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthType(str, Enum):
    """Credentials a request must carry."""

    TOKEN = "token"
    LICENSE = "license"


TOKEN_AUTH = frozenset({AuthType.TOKEN})
LICENSE_AUTH = frozenset({AuthType.TOKEN, AuthType.LICENSE})


class Request(BaseModel):
    """A single API call: method, path, body and the credentials to attach."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    body: dict[str, Any] = Field(default_factory=dict)
    auth: frozenset[AuthType] = TOKEN_AUTH


def compact(**fields: Any) -> dict[str, Any]:
    """Build a request body, dropping parameters that were left unset.

    Args:
        **fields: Body fields

    Returns:
        Body without ``None`` values
    """
    return {key: value for key, value in fields.items() if value is not None}
