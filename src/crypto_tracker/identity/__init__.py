"""External identity lookups."""
from crypto_tracker.identity.auth0 import Auth0IdentityProvider

__all__ = ["Auth0IdentityProvider"]
