from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal


StoreName = Literal["system", "mozilla"]


class ProbeStatus(str, Enum):
    NOT_SUPPORTED = "not_supported"
    SUPPORTED = "supported"
    DEPRECATED = "deprecated"
    MISMATCH = "mismatch"


class ValidityStatus(str, Enum):
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    VALID = "valid"


@dataclass(frozen=True)
class Target:
    host: str
    port: int
    sni: str

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class CheckOptions:
    timeout_seconds: int | None = 10  # None: no timeout
    verbose: bool = False
    store: StoreName = "system"


@dataclass(frozen=True)
class ProtocolVersionResult:
    version: ssl.TLSVersion
    label: str
    status: ProbeStatus
    negotiated: str | None = None
    error: str | None = None

    @property
    def supported(self) -> bool:
        return self.status is not ProbeStatus.NOT_SUPPORTED

    @property
    def negotiated_version_mismatch(self) -> bool:
        return self.status is ProbeStatus.MISMATCH


@dataclass(frozen=True)
class CertificateRecord:
    """
    Display fields of one X.509 certificate, read from the parsed object.
    """
    subject_cn: str
    issuer_cn: str
    not_before: datetime  # aware, UTC
    not_after: datetime   # aware, UTC
    serial_number: int
    signature_algorithm: str
    public_key_algorithm: str
    sha256: str
    dns_names: list[str] = field(default_factory=list)
    key_usage: list[str] = field(default_factory=list)
    ext_key_usage: list[str] = field(default_factory=list)

    @property
    def serial_hex(self) -> str:
        return format(self.serial_number, "X")


@dataclass(frozen=True)
class HostnameCheck:
    hostname: str
    passed: bool
    reason: str | None = None


@dataclass(frozen=True)
class CertificateReport:
    index: int
    label: str
    record: CertificateRecord
    days_left: int
    validity: ValidityStatus
    self_signed_by_name: bool
    self_signature_valid: bool
    hostname_check: HostnameCheck | None = None


@dataclass(frozen=True)
class Chain:
    """
    Server-presented chain: leaf first, then intermediates, then (usually) the root.
    """
    records: list[CertificateRecord]

    def __post_init__(self) -> None:
        if not self.records:
            raise ValueError("chain must contain at least one certificate")

    @property
    def leaf(self) -> CertificateRecord:
        return self.records[0]


@dataclass(frozen=True)
class VerificationOutcome:
    passed: bool
    reason: str | None = None
    trust_store: str | None = None
    roots_loaded: int = 0


@dataclass(frozen=True)
class CheckReport:
    target: Target
    probes: list[ProtocolVersionResult]
    negotiated_version: str | None
    certificates: list[CertificateReport]
    verification: VerificationOutcome
    cipher: str | None = None

    @property
    def chain(self) -> Chain:
        return Chain([c.record for c in self.certificates])
