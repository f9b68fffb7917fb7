"""
Factory functions for backend_transport.
"""
import logging
from typing import Any, Mapping, Optional, Union

import httpx

from .config import TransportSettings, load_settings
from .logging_utils import configure_logging
from .transport import DEFAULT_TIMEOUT_SECONDS, ApiTransport
from .types import TransportConfig


logger = logging.getLogger(__name__)


def create_transport(
    settings: Optional[TransportSettings] = None,
    config: Union[TransportConfig, Mapping[str, Any], None] = None,
    *,
    httpx_client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> ApiTransport:
    """
    Create a transport from settings.

    Args:
        settings: Connection settings. Default: loaded from the environment
        config: TransportConfig or partial override mapping
        httpx_client: Optional injected HTTP client
        timeout: Request timeout in seconds for the owned client

    Returns:
        A new ApiTransport; the caller owns it and must destroy() it

    Example:
        transport = create_transport(config={"cache": {"ttlMs": 60000}})
    """
    settings = settings or load_settings()
    api_key = settings.api_key.get_secret_value() if settings.api_key else None

    logger.debug(
        f"create_transport: base_url={settings.base_url}, "
        f"token_type={settings.token_type}, has_api_key={api_key is not None}"
    )

    return ApiTransport(
        settings.base_url,
        api_key=api_key,
        token_type=settings.token_type,
        config=config,
        httpx_client=httpx_client,
        timeout=timeout,
    )


def create_transport_from_env(
    config: Union[TransportConfig, Mapping[str, Any], None] = None,
    env: Optional[Mapping[str, str]] = None,
    setup_logging: bool = True,
) -> ApiTransport:
    """
    Load settings from the environment, configure logging and create a transport.

    Args:
        config: TransportConfig or partial override mapping
        env: Environment mapping. Default: os.environ
        setup_logging: Install the package log handler

    Returns:
        A new ApiTransport
    """
    settings = load_settings(env)
    if setup_logging:
        configure_logging(settings.log_level, settings.log_format)
    return create_transport(settings, config)
