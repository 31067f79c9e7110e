# tests/conftest.py
import socket
import ssl
import sys
import threading
from pathlib import Path
from types import SimpleNamespace

import pytest

# Make src/ and the test helpers importable without an install
ROOT = Path(__file__).resolve().parents[1]
for p in (ROOT / "src", Path(__file__).resolve().parent):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from certs import make_intermediate, make_leaf, make_root, write_server_files  # noqa: E402


class LocalTLSServer:
    """
    Accepts connections on 127.0.0.1, completes (or fails) the handshake and
    hangs up. Enough for probing and chain fetching.
    """

    def __init__(
        self,
        certfile: Path,
        keyfile: Path,
        minimum=ssl.TLSVersion.TLSv1_2,
        maximum=ssl.TLSVersion.MAXIMUM_SUPPORTED,
        ciphers=None,
    ):
        ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        ctx.load_cert_chain(str(certfile), str(keyfile))
        if ciphers:
            ctx.set_ciphers(ciphers)
        ctx.minimum_version = minimum
        ctx.maximum_version = maximum
        self._ctx = ctx
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(16)
        self._sock.settimeout(0.2)
        self.port = self._sock.getsockname()[1]
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            conn.settimeout(2)
            try:
                with self._ctx.wrap_socket(conn, server_side=True):
                    pass
            except OSError:
                # rejected protocol versions land here
                conn.close()

    def __enter__(self):
        self._thread.start()
        return self

    def __exit__(self, *exc):
        self._stop.set()
        self._thread.join(timeout=5)
        self._sock.close()


@pytest.fixture(scope="session")
def pki():
    root = make_root()
    intermediate = make_intermediate(root)
    leaf = make_leaf(intermediate)
    return SimpleNamespace(root=root, intermediate=intermediate, leaf=leaf)


@pytest.fixture(scope="session")
def chain(pki):
    return [pki.leaf.cert, pki.intermediate.cert, pki.root.cert]


@pytest.fixture
def tls_server(pki, chain, tmp_path):
    certfile, keyfile = write_server_files(tmp_path, pki.leaf, chain)
    with LocalTLSServer(certfile, keyfile) as server:
        yield server


@pytest.fixture
def legacy_tls_server(pki, chain, tmp_path):
    """
    Server that only speaks TLS 1.0. Skipped where the local OpenSSL cannot
    serve it at all.
    """
    if not ssl.HAS_TLSv1:
        pytest.skip("OpenSSL built without TLS 1.0")
    certfile, keyfile = write_server_files(tmp_path, pki.leaf, chain)
    try:
        server = LocalTLSServer(
            certfile,
            keyfile,
            minimum=ssl.TLSVersion.TLSv1,
            maximum=ssl.TLSVersion.TLSv1,
            ciphers="ALL:@SECLEVEL=0",
        )
    except (ValueError, ssl.SSLError) as e:
        pytest.skip(f"cannot serve TLS 1.0 here: {e}")
    with server:
        yield server


@pytest.fixture
def closed_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
