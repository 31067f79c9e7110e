"""Report the TLS posture of a remote host."""

__version__ = "0.1.0"
