from __future__ import annotations

import ipaddress
from datetime import datetime

import service_identity
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID, SignatureAlgorithmOID
from service_identity.cryptography import (
    verify_certificate_hostname,
    verify_certificate_ip_address,
)

from .models import CertificateRecord, CertificateReport, HostnameCheck, ValidityStatus
from .utils import as_utc, sha256_hex, utc_now


SERVER_LABEL = "Server Certificate"
ROOT_LABEL = "Root CA Certificate"

_EXT_KEY_USAGE_NAMES = {
    ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE: "Any",
    ExtendedKeyUsageOID.SERVER_AUTH: "ServerAuth",
    ExtendedKeyUsageOID.CLIENT_AUTH: "ClientAuth",
    ExtendedKeyUsageOID.CODE_SIGNING: "CodeSigning",
    ExtendedKeyUsageOID.EMAIL_PROTECTION: "EmailProtection",
    x509.ObjectIdentifier("1.3.6.1.5.5.7.3.5"): "IPSECEndSystem",
    x509.ObjectIdentifier("1.3.6.1.5.5.7.3.6"): "IPSECTunnel",
    x509.ObjectIdentifier("1.3.6.1.5.5.7.3.7"): "IPSECUser",
    ExtendedKeyUsageOID.TIME_STAMPING: "TimeStamping",
    ExtendedKeyUsageOID.OCSP_SIGNING: "OCSPSigning",
}

_SIGNATURE_ALGORITHM_NAMES = {
    SignatureAlgorithmOID.RSA_WITH_MD5: "MD5-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA1: "SHA1-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA256: "SHA256-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA384: "SHA384-RSA",
    SignatureAlgorithmOID.RSA_WITH_SHA512: "SHA512-RSA",
    SignatureAlgorithmOID.RSASSA_PSS: "RSA-PSS",
    SignatureAlgorithmOID.DSA_WITH_SHA1: "DSA-SHA1",
    SignatureAlgorithmOID.DSA_WITH_SHA256: "DSA-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA1: "ECDSA-SHA1",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256: "ECDSA-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384: "ECDSA-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512: "ECDSA-SHA512",
    SignatureAlgorithmOID.ED25519: "Ed25519",
    SignatureAlgorithmOID.ED448: "Ed448",
}


def _common_name(name: x509.Name) -> str:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return ""
    value = attrs[0].value
    return value.decode("utf-8", "replace") if isinstance(value, bytes) else value


def _get_san_dns(cert: x509.Certificate) -> list[str]:
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return list(ext.value.get_values_for_type(x509.DNSName))


def format_key_usage(ku: x509.KeyUsage) -> list[str]:
    flags = []
    if ku.digital_signature: flags.append("DigitalSignature")
    if ku.content_commitment: flags.append("ContentCommitment")
    if ku.key_encipherment: flags.append("KeyEncipherment")
    if ku.data_encipherment: flags.append("DataEncipherment")
    if ku.key_agreement: flags.append("KeyAgreement")
    if ku.key_cert_sign: flags.append("CertSign")
    if ku.crl_sign: flags.append("CRLSign")
    # encipher_only/decipher_only raise unless key_agreement is set
    if ku.key_agreement:
        if ku.encipher_only: flags.append("EncipherOnly")
        if ku.decipher_only: flags.append("DecipherOnly")
    return flags


def format_ext_key_usage(oids) -> list[str]:
    return [_EXT_KEY_USAGE_NAMES.get(oid, f"Unknown({oid.dotted_string})") for oid in oids]


def _key_usage(cert: x509.Certificate) -> list[str]:
    try:
        ku = cert.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return []
    return format_key_usage(ku)


def _ext_key_usage(cert: x509.Certificate) -> list[str]:
    try:
        eku = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except x509.ExtensionNotFound:
        return []
    return format_ext_key_usage(eku)


def _sig_alg(cert: x509.Certificate) -> str:
    oid = cert.signature_algorithm_oid
    return _SIGNATURE_ALGORITHM_NAMES.get(oid, oid.dotted_string)


def _pubkey_type(cert: x509.Certificate) -> str:
    try:
        pk = cert.public_key()
    except (ValueError, UnsupportedAlgorithm):
        return "Unknown"
    if isinstance(pk, rsa.RSAPublicKey):
        return "RSA"
    if isinstance(pk, ec.EllipticCurvePublicKey):
        return "ECDSA"
    if isinstance(pk, ed25519.Ed25519PublicKey):
        return "Ed25519"
    if isinstance(pk, ed448.Ed448PublicKey):
        return "Ed448"
    if isinstance(pk, dsa.DSAPublicKey):
        return "DSA"
    return pk.__class__.__name__


def record_from_certificate(cert: x509.Certificate) -> CertificateRecord:
    return CertificateRecord(
        subject_cn=_common_name(cert.subject),
        issuer_cn=_common_name(cert.issuer),
        not_before=as_utc(cert.not_valid_before_utc),
        not_after=as_utc(cert.not_valid_after_utc),
        serial_number=cert.serial_number,
        signature_algorithm=_sig_alg(cert),
        public_key_algorithm=_pubkey_type(cert),
        sha256=sha256_hex(cert.public_bytes(serialization.Encoding.DER)),
        dns_names=_get_san_dns(cert),
        key_usage=_key_usage(cert),
        ext_key_usage=_ext_key_usage(cert),
    )


def days_left(not_after: datetime, now: datetime) -> int:
    # timedelta.days already floors, so expired certificates go negative
    return (as_utc(not_after) - as_utc(now)).days


def classify_validity(not_before: datetime, not_after: datetime, now: datetime) -> ValidityStatus:
    now = as_utc(now)
    if now < as_utc(not_before):
        return ValidityStatus.NOT_YET_VALID
    if now > as_utc(not_after):
        return ValidityStatus.EXPIRED
    return ValidityStatus.VALID


def check_hostname(cert: x509.Certificate, hostname: str) -> HostnameCheck:
    """
    RFC 6125 matching of the certificate's subjectAltNames against `hostname`.
    The common name is not consulted.
    """
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        ip = None

    try:
        if ip is not None:
            verify_certificate_ip_address(cert, str(ip))
        else:
            verify_certificate_hostname(cert, hostname)
    except (service_identity.VerificationError, service_identity.CertificateError, ValueError) as e:
        return HostnameCheck(hostname=hostname, passed=False, reason=str(e))
    return HostnameCheck(hostname=hostname, passed=True)


def names_match_heuristic(record: CertificateRecord) -> bool:
    """
    Issuer/subject name equality: the "self-signed" flag shown in reports.

    This compares common name strings only. A certificate whose issuer CN happens
    to equal its subject CN is flagged even when some other key signed it; see
    has_valid_self_signature for the cryptographic check.
    """
    return record.issuer_cn == record.subject_cn


def has_valid_self_signature(cert: x509.Certificate) -> bool:
    try:
        cert.verify_directly_issued_by(cert)
    except (ValueError, TypeError, InvalidSignature, UnsupportedAlgorithm):
        return False
    return True


def chain_label(index: int, length: int) -> str:
    """
    Display label by position. The last entry is assumed to be the root; that is
    a convention for display only and is never relied on for verification.
    """
    if index == 0:
        return SERVER_LABEL
    if index == length - 1:
        return ROOT_LABEL
    return f"Intermediate Certificate {index}"


def inspect_certificate(
    cert: x509.Certificate,
    index: int,
    length: int,
    hostname: str | None = None,
    now: datetime | None = None,
) -> CertificateReport:
    now = now or utc_now()
    record = record_from_certificate(cert)
    return CertificateReport(
        index=index,
        label=chain_label(index, length),
        record=record,
        days_left=days_left(record.not_after, now),
        validity=classify_validity(record.not_before, record.not_after, now),
        self_signed_by_name=names_match_heuristic(record),
        self_signature_valid=has_valid_self_signature(cert),
        hostname_check=check_hostname(cert, hostname) if hostname else None,
    )


def inspect_chain(
    certs: list[x509.Certificate],
    hostname: str,
    now: datetime | None = None,
) -> list[CertificateReport]:
    """
    Inspect every certificate once; the hostname is only matched against the leaf.
    """
    now = now or utc_now()
    n = len(certs)
    return [
        inspect_certificate(c, i, n, hostname=hostname if i == 0 else None, now=now)
        for i, c in enumerate(certs)
    ]
