"""OAuth 2.0 token lifecycle package."""

from .client import MicrosoftOAuthClient, OAuthClientProtocol, TokenEndpointClient
from .google import GoogleOAuthClient
from .manager import TokenLifecycleManager
from .state import OAuthStateStore

__all__ = [
    "GoogleOAuthClient",
    "MicrosoftOAuthClient",
    "OAuthClientProtocol",
    "OAuthStateStore",
    "TokenEndpointClient",
    "TokenLifecycleManager",
]
