from dataclasses import dataclass
from typing import Literal

from imgstore_client.config import Settings, settings

AuthScheme = Literal["bearer", "api-key"]


@dataclass(frozen=True, slots=True)
class BearerToken:
    token: str

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def __repr__(self) -> str:
        return "BearerToken(token='***')"


@dataclass(frozen=True, slots=True)
class ApiKey:
    key: str

    def headers(self) -> dict[str, str]:
        return {"X-API-Key": self.key}

    def __repr__(self) -> str:
        return "ApiKey(key='***')"


Credential = BearerToken | ApiKey


def make_credential(secret: str | None, scheme: AuthScheme = "bearer") -> Credential | None:
    if not secret:
        return None
    if scheme == "bearer":
        return BearerToken(secret)
    if scheme == "api-key":
        return ApiKey(secret)
    raise ValueError(f"Unknown auth scheme: {scheme}")


def credential_from_settings(source: Settings | None = None) -> Credential | None:
    source = source or settings
    return make_credential(source.api_key, source.auth_scheme)


def auth_headers(credential: Credential | None) -> dict[str, str]:
    if credential is None:
        return {}
    return credential.headers()
