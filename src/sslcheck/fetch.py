from __future__ import annotations

import _ssl
import logging
import socket
import ssl
from dataclasses import dataclass

from cryptography import x509

from .errors import ChainFetchError, EmptyChainError
from .models import Target

logger = logging.getLogger(__name__)

# OpenSSL refuses anything below TLS 1.2 at the default security level.
LEGACY_CIPHERS = "ALL:@SECLEVEL=0"


@dataclass(frozen=True)
class FetchedChain:
    tls_version: str | None
    cipher: str | None
    certificates: list[x509.Certificate]


def insecure_client_context(
    minimum: ssl.TLSVersion = ssl.TLSVersion.MINIMUM_SUPPORTED,
    maximum: ssl.TLSVersion = ssl.TLSVersion.MAXIMUM_SUPPORTED,
) -> ssl.SSLContext:
    """
    Client context with transport verification disabled; certificates are
    inspected and verified separately.

    Raises ValueError when the local OpenSSL cannot pin the requested range.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    try:
        ctx.set_ciphers(LEGACY_CIPHERS)
    except ssl.SSLError:
        logger.debug("legacy cipher policy rejected by local OpenSSL")
    ctx.minimum_version = minimum
    ctx.maximum_version = maximum
    return ctx


def _unverified_chain_der(ssock: ssl.SSLSocket) -> list[bytes]:
    # Public API from Python 3.13; the underlying object has it since 3.10.
    if hasattr(ssock, "get_unverified_chain"):
        return list(ssock.get_unverified_chain() or [])  # type: ignore[attr-defined]
    sslobj = getattr(ssock, "_sslobj", None)
    if sslobj is not None and hasattr(sslobj, "get_unverified_chain"):
        chain = sslobj.get_unverified_chain() or []
        return [c.public_bytes(_ssl.ENCODING_DER) for c in chain]
    return []


def _presented_ders(ssock: ssl.SSLSocket) -> list[bytes]:
    # Normalize: ensure leaf is first and included
    leaf_der = ssock.getpeercert(binary_form=True)
    ders: list[bytes] = [leaf_der] if leaf_der else []
    for d in _unverified_chain_der(ssock):
        if d and d != leaf_der:
            ders.append(d)
    return ders


def _load_certificate(der: bytes) -> x509.Certificate:
    cert = x509.load_der_x509_certificate(der)
    # extensions are parsed lazily; malformed or duplicate ones raise here
    cert.extensions
    return cert


def fetch_presented_chain(target: Target, timeout_seconds: int | None) -> FetchedChain:
    """
    Open one unpinned TLS connection and return the certificates the server
    presented, leaf first.
    """
    ctx = insecure_client_context()

    try:
        with socket.create_connection((target.host, target.port), timeout=timeout_seconds) as sock:
            with ctx.wrap_socket(sock, server_hostname=target.sni) as ssock:
                tls_version = ssock.version()
                cipher = ssock.cipher()
                ders = _presented_ders(ssock)
    except (OSError, ValueError) as e:
        raise ChainFetchError(f"failed to connect: {e}") from e

    if not ders:
        raise EmptyChainError("no certificates found")

    try:
        certs = [_load_certificate(der) for der in ders]
    except ValueError as e:
        raise ChainFetchError(f"unparseable certificate: {e}") from e

    logger.debug(
        "fetched %d certificate(s) from %s over %s", len(certs), target.address, tls_version
    )
    return FetchedChain(
        tls_version=tls_version,
        cipher=cipher[0] if cipher else None,
        certificates=certs,
    )
