"""azure-core TokenCredential backed by the AuthManager."""

from typing import Any

from azure.core.credentials import AccessToken, TokenCredential

from ms365_auth.auth.manager import AuthManager


class BrokerCredential(TokenCredential):
    """
    Hand the broker's token to azure-core based SDK clients (e.g. GraphServiceClient).
    Scopes requested by the SDK are ignored: the token always carries the scopes
    configured on the AuthManager. Never starts the device-code flow; run `login` first.
    """

    def __init__(self, manager: AuthManager):
        self._manager = manager

    def get_token(self, *scopes: str, **kwargs: Any) -> AccessToken:
        token = self._manager.get_token(force_refresh=bool(kwargs.get("force_refresh", False)))
        record = self._manager.token_record
        expires_on = int(record.expires_on) if record is not None else 0
        return AccessToken(token=token, expires_on=expires_on)
