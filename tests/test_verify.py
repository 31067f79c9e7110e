# tests/test_verify.py
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from certs import make_leaf, make_root, pem
from sslcheck import truststore, verify
from sslcheck.errors import SSLCheckError, TrustStoreUnavailable


class TestVerifyChain:
    def test_trusted_root_passes(self, pki, chain):
        outcome = verify.verify_chain(chain, "localhost", [pki.root.cert])
        assert outcome.passed
        assert outcome.reason is None
        assert outcome.roots_loaded == 1

    def test_root_not_presented_still_passes(self, pki, chain):
        outcome = verify.verify_chain(chain[:2], "localhost", [pki.root.cert])
        assert outcome.passed

    def test_ip_target(self, pki, chain):
        assert verify.verify_chain(chain, "127.0.0.1", [pki.root.cert]).passed

    def test_hostname_mismatch_fails(self, pki, chain):
        outcome = verify.verify_chain(chain, "example.org", [pki.root.cert])
        assert not outcome.passed
        assert outcome.reason

    def test_untrusted_root_fails(self, chain):
        stranger = make_root("Somebody Else's Root")
        outcome = verify.verify_chain(chain, "localhost", [stranger.cert])
        assert not outcome.passed
        assert outcome.reason

    def test_expired_leaf_fails(self, pki):
        now = datetime.now(timezone.utc)
        expired = make_leaf(
            pki.intermediate,
            not_before=now - timedelta(days=60),
            not_after=now - timedelta(days=2),
        )
        outcome = verify.verify_chain(
            [expired.cert, pki.intermediate.cert, pki.root.cert], "localhost", [pki.root.cert]
        )
        assert not outcome.passed
        assert "not valid at validation time" in outcome.reason

    def test_verifies_at_given_time(self, pki, chain):
        later = datetime.now(timezone.utc) + timedelta(days=365)
        assert not verify.verify_chain(chain, "localhost", [pki.root.cert], now=later).passed

    def test_positional_root_is_not_trusted_by_itself(self, chain):
        # The last presented certificate only goes into the intermediate pool.
        other = make_root("Unrelated Root")
        assert not verify.verify_chain(chain, "localhost", [other.cert]).passed

    def test_empty_pool_fails_without_raising(self, chain):
        outcome = verify.verify_chain(chain, "localhost", [])
        assert not outcome.passed
        assert outcome.reason == verify.NO_ROOTS_REASON
        assert outcome.roots_loaded == 0

    def test_empty_chain_is_a_programming_error(self, pki):
        with pytest.raises(ValueError):
            verify.verify_chain([], "localhost", [pki.root.cert])


class TestVerifyWithStore:
    def test_unavailable_store_degrades_to_failure(self, chain, monkeypatch):
        def unavailable(store):
            raise TrustStoreUnavailable("no system trust roots found")

        monkeypatch.setattr(verify, "load_roots", unavailable)
        outcome = verify.verify_with_store(chain, "localhost", store="system")
        assert not outcome.passed
        assert outcome.reason == verify.NO_ROOTS_REASON
        assert outcome.trust_store == "system"

    def test_named_store_is_used(self, pki, chain, monkeypatch):
        seen = []

        def loader(store):
            seen.append(store)
            return [pki.root.cert]

        monkeypatch.setattr(verify, "load_roots", loader)
        assert verify.verify_with_store(chain, "localhost", store="mozilla").passed
        assert seen == ["mozilla"]

    def test_test_root_is_not_publicly_trusted(self, chain):
        assert not verify.verify_with_store(chain, "localhost", store="mozilla").passed


class TestTrustStore:
    def test_bundle_skips_garbage(self, pki):
        junk = b"-----BEGIN CERTIFICATE-----\nbm90IGEgY2VydA==\n-----END CERTIFICATE-----\n"
        data = pem(pki.root.cert) + junk + pem(pki.intermediate.cert)
        assert truststore.parse_pem_bundle(data) == [pki.root.cert, pki.intermediate.cert]

    def test_mozilla_bundle_loads(self):
        assert len(truststore.load_mozilla_roots()) > 50

    def test_system_store_from_cafile(self, pki, tmp_path, monkeypatch):
        cafile = tmp_path / "ca.pem"
        cafile.write_bytes(pem(pki.root.cert))
        monkeypatch.setattr(
            truststore.ssl,
            "get_default_verify_paths",
            lambda: SimpleNamespace(cafile=str(cafile), capath=None),
        )
        assert truststore.load_system_roots() == [pki.root.cert]

    def test_system_store_from_capath(self, tmp_path, monkeypatch):
        roots = [make_root("Dir Root A"), make_root("Dir Root B")]
        for i, r in enumerate(roots):
            (tmp_path / f"{i}.pem").write_bytes(pem(r.cert))
        monkeypatch.setattr(
            truststore.ssl,
            "get_default_verify_paths",
            lambda: SimpleNamespace(cafile=None, capath=str(tmp_path)),
        )
        assert truststore.load_system_roots() == [r.cert for r in roots]

    def test_system_store_missing(self, monkeypatch):
        monkeypatch.setattr(
            truststore.ssl,
            "get_default_verify_paths",
            lambda: SimpleNamespace(cafile=None, capath=None),
        )
        with pytest.raises(TrustStoreUnavailable):
            truststore.load_system_roots()

    def test_unknown_store(self):
        with pytest.raises(TrustStoreUnavailable):
            truststore.load_roots("windows")

    def test_unavailable_store_is_not_fatal(self):
        assert not issubclass(TrustStoreUnavailable, SSLCheckError)
