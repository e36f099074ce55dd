"""In-memory stand-ins for the OS keychain, MSAL application and failing file storage."""

import msal
from keyring.errors import KeyringLocked, PasswordDeleteError

from ms365_auth.auth.credential_store import FallbackFileStore

ACCOUNT_TYPE = msal.TokenCache.CredentialType.ACCOUNT

ACCOUNT = {
    "home_account_id": "uid.utid",
    "environment": "login.microsoftonline.com",
    "realm": "utid",
    "local_account_id": "uid",
    "username": "adele@contoso.com",
    "authority_type": "MSSTS",
}


class MemoryKeyring:
    """Dict-backed object with the keyring get/set/delete_password API."""

    def __init__(self):
        self.entries: dict[tuple[str, str], str] = {}
        self.writes = 0

    def get_password(self, service, username):
        return self.entries.get((service, username))

    def set_password(self, service, username, password):
        self.writes += 1
        self.entries[(service, username)] = password

    def delete_password(self, service, username):
        if (service, username) not in self.entries:
            raise PasswordDeleteError("Password not found")
        del self.entries[(service, username)]


class LockedKeyring:
    """Keychain that refuses every operation, as a locked or missing backend does."""

    def __init__(self):
        self.calls = 0

    def _fail(self, *args):
        self.calls += 1
        raise KeyringLocked("Keyring is locked")

    get_password = _fail
    set_password = _fail
    delete_password = _fail


class UndeletableFileStore(FallbackFileStore):
    """Fallback file whose deletion always fails."""

    def delete(self) -> bool:
        raise PermissionError(f"Permission denied: '{self.path}'")


class FakeMsalApp:
    """Records calls made by AuthManager; results are configured per test.

    Accounts live in a real SerializableTokenCache, so clearing that cache
    signs them out. remove_account fails like an app whose authority
    discovery cannot reach the network.
    """

    def __init__(self, accounts=None, silent_result=None, flow=None, flow_result=None, flow_error=None):
        self.token_cache = msal.SerializableTokenCache()
        for account in accounts or []:
            self.token_cache.modify(ACCOUNT_TYPE, account, account)
        self.token_cache.has_state_changed = False
        self.silent_result = silent_result
        self.flow = flow if flow is not None else {
            "user_code": "ABCD-1234",
            "device_code": "device-code",
            "verification_uri": "https://microsoft.com/devicelogin",
            "expires_in": 900,
            "message": "To sign in, use a web browser to open https://microsoft.com/devicelogin and enter the code ABCD-1234.",
        }
        self.flow_result = flow_result if flow_result is not None else {
            "access_token": "interactive-token",
            "expires_in": 3600,
        }
        self.flow_error = flow_error
        self.before_initiate = None
        self.silent_calls: list[tuple[list[str], dict]] = []
        self.initiate_calls: list[list[str]] = []

    def get_accounts(self):
        return list(self.token_cache.search(ACCOUNT_TYPE))

    def remove_account(self, account):
        raise ConnectionError("Unable to get authority configuration for https://login.microsoftonline.com/common")

    def acquire_token_silent(self, scopes, account=None):
        self.silent_calls.append((scopes, account))
        return self.silent_result

    def initiate_device_flow(self, scopes=None):
        if self.before_initiate is not None:
            self.before_initiate()
        self.initiate_calls.append(list(scopes))
        return dict(self.flow)

    def acquire_token_by_device_flow(self, flow):
        if self.flow_error is not None:
            raise self.flow_error
        if "access_token" in self.flow_result:
            self.token_cache.modify(ACCOUNT_TYPE, ACCOUNT, ACCOUNT)
        return dict(self.flow_result)
