"""TLS context creation shared by the HTTP and WebSocket transports."""

from __future__ import annotations

import ssl
from typing import Optional

import structlog

from synse_client.config.settings import TLSOptions

from .exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


def create_ssl_context(tls: TLSOptions) -> Optional[ssl.SSLContext]:
    """Create the SSL context for a client, or None when TLS is disabled.

    The client certificate chain is loaded up front so a bad certificate
    fails while the client is being built, not on the first request.

    Args:
        tls: TLS options from the client configuration.

    Returns:
        SSLContext configured from the options, or None.

    Raises:
        ConfigurationError: If the certificate or key cannot be loaded.
    """
    if not tls.enabled:
        return None

    ctx = ssl.create_default_context()
    if tls.skip_verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE

    try:
        ctx.load_cert_chain(certfile=tls.cert_file, keyfile=tls.key_file)
    except (OSError, ssl.SSLError) as e:
        raise ConfigurationError(
            f"failed to set client certificates: {e}",
            hint="Check that cert_file and key_file are a matching PEM pair.",
        )

    logger.debug(
        "tls_context_created",
        cert_file=tls.cert_file,
        skip_verify=tls.skip_verify,
    )
    return ctx
