from __future__ import annotations

import ssl
from types import MappingProxyType

# Oldest first; this is also the probe order.
PROTOCOL_LABELS = MappingProxyType(
    {
        ssl.TLSVersion.SSLv3: "SSL 3.0 (deprecated)",
        ssl.TLSVersion.TLSv1: "TLS 1.0 (deprecated)",
        ssl.TLSVersion.TLSv1_1: "TLS 1.1 (deprecated)",
        ssl.TLSVersion.TLSv1_2: "TLS 1.2",
        ssl.TLSVersion.TLSv1_3: "TLS 1.3",
    }
)

CANDIDATE_VERSIONS: tuple[ssl.TLSVersion, ...] = tuple(PROTOCOL_LABELS)

DEPRECATION_THRESHOLD = ssl.TLSVersion.TLSv1_1


def label_for(version: ssl.TLSVersion) -> str:
    return PROTOCOL_LABELS.get(version, version.name)


def is_deprecated(version: ssl.TLSVersion) -> bool:
    return version <= DEPRECATION_THRESHOLD


def from_wire_name(name: str | None) -> ssl.TLSVersion | None:
    """
    Map SSLSocket.version() output ("TLSv1.2", "SSLv3") to ssl.TLSVersion.
    """
    if not name:
        return None
    try:
        return ssl.TLSVersion[name.replace(".", "_")]
    except KeyError:
        return None
