from __future__ import annotations

import logging
import re
import ssl
from pathlib import Path

import certifi
from cryptography import x509

from .errors import TrustStoreUnavailable

logger = logging.getLogger(__name__)

_PEM_BLOCK = re.compile(
    rb"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----", re.DOTALL
)


def parse_pem_bundle(data: bytes, source: str = "bundle") -> list[x509.Certificate]:
    """
    Parse every certificate in a PEM bundle, skipping blocks the library rejects.
    """
    out: list[x509.Certificate] = []
    for block in _PEM_BLOCK.findall(data):
        try:
            out.append(x509.load_pem_x509_certificate(block))
        except ValueError as e:
            logger.debug("skipping unparseable certificate in %s: %s", source, e)
    return out


def _load_file(path: Path) -> list[x509.Certificate]:
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.debug("cannot read %s: %s", path, e)
        return []
    return parse_pem_bundle(data, source=str(path))


def load_system_roots() -> list[x509.Certificate]:
    paths = ssl.get_default_verify_paths()
    roots: list[x509.Certificate] = []

    if paths.cafile:
        roots = _load_file(Path(paths.cafile))
    if not roots and paths.capath and Path(paths.capath).is_dir():
        for entry in sorted(Path(paths.capath).iterdir()):
            if entry.is_file():
                roots.extend(_load_file(entry))

    if not roots:
        raise TrustStoreUnavailable(
            f"no system trust roots found (cafile={paths.cafile!r}, capath={paths.capath!r})"
        )
    logger.debug("loaded %d system trust roots", len(roots))
    return roots


def load_mozilla_roots() -> list[x509.Certificate]:
    path = Path(certifi.where())
    roots = _load_file(path)
    if not roots:
        raise TrustStoreUnavailable(f"certifi bundle at {path} is empty or unreadable")
    logger.debug("loaded %d roots from %s", len(roots), path)
    return roots


_LOADERS = {
    "system": load_system_roots,
    "mozilla": load_mozilla_roots,
}


def load_roots(store: str) -> list[x509.Certificate]:
    try:
        loader = _LOADERS[store]
    except KeyError:
        raise TrustStoreUnavailable(f"unknown trust store: {store}") from None
    return loader()
