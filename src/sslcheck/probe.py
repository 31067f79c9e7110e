from __future__ import annotations

import logging
import socket
import ssl

from .fetch import insecure_client_context
from .models import ProbeStatus, ProtocolVersionResult, Target
from .versions import CANDIDATE_VERSIONS, from_wire_name, is_deprecated, label_for

logger = logging.getLogger(__name__)


def classify(requested: ssl.TLSVersion, negotiated: ssl.TLSVersion | None) -> ProbeStatus:
    if negotiated != requested:
        return ProbeStatus.MISMATCH
    if is_deprecated(requested):
        return ProbeStatus.DEPRECATED
    return ProbeStatus.SUPPORTED


def _handshake_version(target: Target, version: ssl.TLSVersion, timeout_seconds: int | None) -> str | None:
    """
    Handshake pinned to exactly `version` and return what the server negotiated.
    """
    ctx = insecure_client_context(minimum=version, maximum=version)
    with socket.create_connection((target.host, target.port), timeout=timeout_seconds) as sock:
        with ctx.wrap_socket(sock, server_hostname=target.sni) as ssock:
            return ssock.version()


def probe_version(target: Target, version: ssl.TLSVersion, timeout_seconds: int | None) -> ProtocolVersionResult:
    label = label_for(version)
    try:
        negotiated = _handshake_version(target, version, timeout_seconds)
    except (OSError, ValueError) as e:
        logger.debug("%s: %s handshake failed: %s", target.address, version.name, e)
        return ProtocolVersionResult(
            version=version, label=label, status=ProbeStatus.NOT_SUPPORTED, error=str(e)
        )

    status = classify(version, from_wire_name(negotiated))
    if status is ProbeStatus.MISMATCH:
        logger.info("%s: asked for %s, server negotiated %s", target.address, version.name, negotiated)
    return ProtocolVersionResult(version=version, label=label, status=status, negotiated=negotiated)


def probe_protocol_versions(target: Target, timeout_seconds: int | None) -> list[ProtocolVersionResult]:
    """
    One fresh, pinned handshake per candidate version, oldest first. No retries:
    a transient failure is reported as not supported.
    """
    return [probe_version(target, v, timeout_seconds) for v in CANDIDATE_VERSIONS]
