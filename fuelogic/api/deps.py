# fuelogic/api/deps.py
"""
FastAPI dependencies.

Components are built once in create_app() and stored on app.state; routes
reach them through these functions so tests can build an app around their
own engine and HTTP client.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from ..contacts import ContactDirectory
from ..security import CredentialProvider, Principal
from ..settings import Settings
from ..tanks import ConfigurationStore
from ..webhooks import AlertDispatcher, WebhookRegistry


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_credentials(request: Request) -> CredentialProvider:
    return request.app.state.credentials


def get_registry(request: Request) -> WebhookRegistry:
    return request.app.state.registry


def get_config_store(request: Request) -> ConfigurationStore:
    return request.app.state.config_store


def get_dispatcher(request: Request) -> AlertDispatcher:
    return request.app.state.dispatcher


def get_contacts(request: Request) -> ContactDirectory:
    return request.app.state.contacts


def get_principal(
    authorization: Optional[str] = Header(default=None),
    credentials: CredentialProvider = Depends(get_credentials),
) -> Principal:
    """Authenticated caller; raises AuthenticationError (401) otherwise."""
    return credentials.authenticate(authorization)
