"""Factory functions for creating backend gateways."""

from shared.config import Settings

from .base import IBackendGateway
from .http import HttpBackendGateway
from .memory import InMemoryBackendGateway

GATEWAY_KINDS = ("http", "memory")


def create_gateway(settings: Settings, kind: str = "http") -> IBackendGateway:
    """Create a gateway of the given kind.

    Args:
        settings: Client settings (base URL and timeout for HTTP)
        kind: "http" for the real API, "memory" for the in-process fake

    Returns:
        A ready-to-use gateway instance

    Raises:
        ValueError: If kind is not one of GATEWAY_KINDS
    """
    if kind == "http":
        return HttpBackendGateway(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
        )
    if kind == "memory":
        return InMemoryBackendGateway()
    raise ValueError(
        f"Unknown gateway kind '{kind}'. Expected one of: {', '.join(GATEWAY_KINDS)}"
    )
