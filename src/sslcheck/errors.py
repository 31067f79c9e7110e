from __future__ import annotations


class SSLCheckError(Exception):
    """Fatal condition: the run stops and the CLI exits non-zero."""


class ChainFetchError(SSLCheckError):
    pass


class EmptyChainError(ChainFetchError):
    pass


class TrustStoreUnavailable(Exception):
    """
    No roots could be loaded from a trust store. Not fatal: verification
    falls back to an empty pool and reports the failure.
    """
