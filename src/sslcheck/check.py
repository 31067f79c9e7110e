from __future__ import annotations

import logging
from datetime import datetime

from .fetch import fetch_presented_chain
from .inspector import inspect_chain
from .models import CheckOptions, CheckReport, ProtocolVersionResult, Target
from .probe import probe_protocol_versions
from .utils import utc_now
from .verify import verify_with_store

logger = logging.getLogger(__name__)


def run_check(
    target: Target,
    options: CheckOptions,
    now: datetime | None = None,
    probes: list[ProtocolVersionResult] | None = None,
) -> CheckReport:
    """
    probe -> fetch -> inspect -> verify.

    Pass `probes` when the protocol rows were already collected (and possibly
    shown); they are not repeated.

    Raises SSLCheckError when the chain cannot be fetched. Everything else is
    recorded in the report.
    """
    logger.info("checking %s (sni=%s)", target.address, target.sni)
    if probes is None:
        probes = probe_protocol_versions(target, options.timeout_seconds)

    # Unpinned: may negotiate a different version than any single probe row.
    fetched = fetch_presented_chain(target, options.timeout_seconds)

    now = now or utc_now()
    certificates = inspect_chain(fetched.certificates, target.host, now=now)
    verification = verify_with_store(
        fetched.certificates, target.host, store=options.store, now=now
    )
    if not verification.passed:
        logger.info("chain verification failed for %s: %s", target.host, verification.reason)

    return CheckReport(
        target=target,
        probes=probes,
        negotiated_version=fetched.tls_version,
        certificates=certificates,
        verification=verification,
        cipher=fetched.cipher,
    )
