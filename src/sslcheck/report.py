from __future__ import annotations

from typing import Any

from . import __version__
from .models import (
    CertificateReport,
    CheckReport,
    ProbeStatus,
    ProtocolVersionResult,
    Target,
    ValidityStatus,
)
from .utils import dt_to_utc_iso

OK = "✅"
FAIL = "❌"
WARN = "⚠️"
UNKNOWN = "❓"
INFO = "ℹ️"

_PROBE_LINES = {
    ProbeStatus.NOT_SUPPORTED: (FAIL, "Not supported"),
    ProbeStatus.SUPPORTED: (OK, "Supported"),
    ProbeStatus.DEPRECATED: (WARN, "Supported (DEPRECATED, SECURITY RISK)"),
    ProbeStatus.MISMATCH: (UNKNOWN, "Server negotiated different version"),
}

_VALIDITY_LINES = {
    ValidityStatus.NOT_YET_VALID: f"{FAIL} Certificate is not yet valid",
    ValidityStatus.EXPIRED: f"{FAIL} Certificate has expired",
    ValidityStatus.VALID: f"{OK} Certificate date is valid",
}


def render_probe(result: ProtocolVersionResult) -> str:
    mark, text = _PROBE_LINES[result.status]
    return f"   {mark} {result.label}: {text}"


def _section_number(cert: CertificateReport, length: int) -> int:
    if cert.index == 0:
        return 1
    if cert.index == length - 1:
        return 3
    return 2


def render_certificate(cert: CertificateReport, verbose: bool = False) -> list[str]:
    r = cert.record
    lines = [
        f"   Subject: {r.subject_cn}",
        f"   Issuer: {r.issuer_cn}",
        f"   Valid from: {r.not_before:%Y-%m-%d} to {r.not_after:%Y-%m-%d} ({cert.days_left} days left)",
        f"   {_VALIDITY_LINES[cert.validity]}",
    ]

    hc = cert.hostname_check
    if hc is not None:
        if hc.passed:
            lines.append(f"   {OK} Hostname verification PASSED")
        else:
            lines.append(f"   {FAIL} Hostname verification FAILED: {hc.reason}")

    if cert.self_signed_by_name:
        lines.append(f"   {INFO} Self-signed certificate detected")

    if verbose:
        lines.append("   --- Detailed Certificate Information ---")
        lines.append(f"   Serial Number: {r.serial_hex}")
        lines.append(f"   Signature Algorithm: {r.signature_algorithm}")
        lines.append(f"   Public Key Algorithm: {r.public_key_algorithm}")
        if r.dns_names:
            lines.append(f"   DNS Names: {', '.join(r.dns_names)}")
        if r.key_usage:
            lines.append(f"   Key Usage: {', '.join(r.key_usage)}")
        if r.ext_key_usage:
            lines.append(f"   Extended Key Usage: {', '.join(r.ext_key_usage)}")
        lines.append(f"   SHA-256 Fingerprint: {r.sha256}")
        lines.append(f"   Self-signature: {'valid' if cert.self_signature_valid else 'not valid'}")
    return lines


def render_protocol_section(target: Target, probes: list[ProtocolVersionResult]) -> list[str]:
    """
    Header and protocol rows. Printed on their own when the chain fetch fails.
    """
    lines = [f"Checking SSL/TLS for {target.host}:{target.port}", ""]
    lines.append("=== TLS Protocol Support ===")
    lines.extend(render_probe(p) for p in probes)
    lines.append("")
    return lines


def _fetched_over(report: CheckReport) -> str | None:
    if not report.negotiated_version:
        return None
    if report.cipher:
        return f"   (fetched over {report.negotiated_version}, {report.cipher})"
    return f"   (fetched over {report.negotiated_version})"


def render_text(report: CheckReport, verbose: bool = False) -> str:
    lines = render_protocol_section(report.target, report.probes)

    lines.append("=== Certificate Chain ===")
    fetched_over = _fetched_over(report)
    if fetched_over:
        lines.append(fetched_over)
    n = len(report.certificates)
    for cert in report.certificates:
        if cert.index > 0:
            lines.append("")
        lines.append(f"{_section_number(cert, n)}. {cert.label}:")
        lines.extend(render_certificate(cert, verbose=verbose))

    lines.append("")
    lines.append("=== Certificate Chain Verification ===")
    v = report.verification
    if v.passed:
        lines.append(f"{OK} Certificate chain verification PASSED")
    else:
        lines.append(f"{FAIL} Certificate chain verification FAILED")
        lines.append(f"   Reason: {v.reason}")
    return "\n".join(lines)


def _cert_payload(cert: CertificateReport) -> dict[str, Any]:
    r = cert.record
    hc = cert.hostname_check
    return {
        "index": cert.index,
        "label": cert.label,
        "subject_cn": r.subject_cn,
        "issuer_cn": r.issuer_cn,
        "not_before": dt_to_utc_iso(r.not_before),
        "not_after": dt_to_utc_iso(r.not_after),
        "days_left": cert.days_left,
        "validity": cert.validity.value,
        "hostname_check": (
            None if hc is None else {"hostname": hc.hostname, "passed": hc.passed, "reason": hc.reason}
        ),
        "self_signed_by_name": cert.self_signed_by_name,
        "self_signature_valid": cert.self_signature_valid,
        "serial_number": r.serial_hex,
        "signature_algorithm": r.signature_algorithm,
        "public_key_algorithm": r.public_key_algorithm,
        "dns_names": r.dns_names,
        "key_usage": r.key_usage,
        "ext_key_usage": r.ext_key_usage,
        "sha256": r.sha256,
    }


def to_payload(report: CheckReport) -> dict[str, Any]:
    t = report.target
    v = report.verification
    return {
        "target": {"host": t.host, "port": t.port, "sni": t.sni},
        "version": __version__,
        "protocols": [
            {
                "version": p.version.name,
                "label": p.label,
                "status": p.status.value,
                "supported": p.supported,
                "negotiated": p.negotiated,
                "negotiated_version_mismatch": p.negotiated_version_mismatch,
                "error": p.error,
            }
            for p in report.probes
        ],
        "negotiated_version": report.negotiated_version,
        "cipher": report.cipher,
        "chain": {
            "presented_count": len(report.chain.records),
            "certs": [_cert_payload(c) for c in report.certificates],
        },
        "verification": {
            "passed": v.passed,
            "reason": v.reason,
            "trust_store": v.trust_store,
            "roots_loaded": v.roots_loaded,
        },
    }
