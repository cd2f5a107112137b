# fuelogic/security.py
"""
Bearer credential resolution.

Tokens are configured as "token:owner" pairs (API_TOKENS). The provider is
created once per app and handed to the routes as a dependency.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .errors import AuthenticationError

ANONYMOUS_OWNER = "default"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""
    owner_id: str
    token: str


def parse_token_map(raw: str) -> Dict[str, str]:
    """Parse "tok1:owner1,tok2:owner2"; a token without owner maps to itself."""
    tokens: Dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        token, _, owner = item.partition(":")
        tokens[token.strip()] = owner.strip() or token.strip()
    return tokens


class CredentialProvider:
    """Resolves Authorization headers to principals."""

    def __init__(self, tokens: Dict[str, str], enabled: bool = True):
        self._tokens = dict(tokens)
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings) -> "CredentialProvider":
        return cls(parse_token_map(settings.api_tokens), enabled=settings.auth_enabled)

    def authenticate(self, authorization: Optional[str]) -> Principal:
        if not self.enabled:
            return Principal(owner_id=ANONYMOUS_OWNER, token="")

        scheme, _, token = (authorization or "").partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise AuthenticationError("Token de autenticação não fornecido")

        owner_id = self._tokens.get(token)
        if owner_id is None:
            raise AuthenticationError("Token inválido ou expirado")
        return Principal(owner_id=owner_id, token=token)
