from __future__ import annotations

import ipaddress
import logging
from datetime import datetime

from cryptography import x509
from cryptography.x509.verification import PolicyBuilder, Store, VerificationError

from .errors import TrustStoreUnavailable
from .models import VerificationOutcome
from .truststore import load_roots
from .utils import utc_now

logger = logging.getLogger(__name__)

NO_ROOTS_REASON = "no trust roots available: certificate signed by unknown authority"


def _subject_for(hostname: str) -> x509.GeneralName:
    try:
        return x509.IPAddress(ipaddress.ip_address(hostname))
    except ValueError:
        return x509.DNSName(hostname)


def verify_chain(
    certs: list[x509.Certificate],
    hostname: str,
    roots: list[x509.Certificate],
    now: datetime | None = None,
    trust_store: str | None = None,
) -> VerificationOutcome:
    """
    Path-build and validate the leaf for `hostname`.

    Every presented certificate after the leaf goes into the intermediate pool,
    whatever its position; which one is the anchor is for the verifier to decide.
    """
    if not certs:
        raise ValueError("cannot verify an empty chain")
    leaf, intermediates = certs[0], list(certs[1:])

    if not roots:
        return VerificationOutcome(
            passed=False, reason=NO_ROOTS_REASON, trust_store=trust_store, roots_loaded=0
        )

    try:
        verifier = (
            PolicyBuilder()
            .store(Store(roots))
            .time(now or utc_now())
            .build_server_verifier(_subject_for(hostname))
        )
        verifier.verify(leaf, intermediates)
    except (VerificationError, ValueError) as e:
        return VerificationOutcome(
            passed=False, reason=str(e), trust_store=trust_store, roots_loaded=len(roots)
        )
    return VerificationOutcome(passed=True, trust_store=trust_store, roots_loaded=len(roots))


def verify_with_store(
    certs: list[x509.Certificate],
    hostname: str,
    store: str = "system",
    now: datetime | None = None,
) -> VerificationOutcome:
    """
    Like verify_chain, with roots from a named store. An unavailable store
    degrades to an empty pool, so verification fails rather than the run.
    """
    try:
        roots = load_roots(store)
    except TrustStoreUnavailable as e:
        logger.warning("trust store %r unavailable, verifying against an empty pool: %s", store, e)
        roots = []
    return verify_chain(certs, hostname, roots, now=now, trust_store=store)
