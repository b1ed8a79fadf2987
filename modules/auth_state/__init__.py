"""
Auth state module.

Turns session events into state broadcasts and keeps the access token
fresh.

Public API:
- AuthStateCoordinator: Event observer, listener registry, route guard
- RefreshScheduler: Periodic token refresh check
- AuthSnapshot, AuthGate: Broadcast state and guard answers
"""

from .models import AuthSnapshot, AuthGate
from .scheduler import RefreshScheduler
from .service import AuthStateCoordinator

__all__ = [
    "AuthStateCoordinator",
    "RefreshScheduler",
    "AuthSnapshot",
    "AuthGate",
]
