import uuid
from typing import Literal

from pydantic import BaseModel

PrincipalKind = Literal["oauth", "api_key"]


class ApiPrincipal(BaseModel):
    """Who is behind a third-party API call: an OAuth grant or an API key."""

    kind: PrincipalKind
    subject: str  # user id for OAuth, owner id for API keys
    scopes: list[str]
    client_id: str | None = None
    api_key_id: uuid.UUID | None = None

    def has_scopes(self, *required: str) -> bool:
        return all(scope in self.scopes for scope in required)
