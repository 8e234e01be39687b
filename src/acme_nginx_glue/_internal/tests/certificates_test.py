"""Tests for acme_nginx_glue._internal.certificates."""
import sys
import unittest

import pytest

from acme_nginx_glue import errors
from acme_nginx_glue._internal.certificates import cert_key_pair
from acme_nginx_glue._internal.certificates import CertificateLifecycle
from acme_nginx_glue._internal.certificates import CertKeyPair
from acme_nginx_glue._internal.classifier import CertState
from acme_nginx_glue._internal.tests import test_util as util

FINAL_B = CertKeyPair("/etc/letsencrypt/live/b.example.com/fullchain.pem",
                      "/etc/letsencrypt/live/b.example.com/privkey.pem")
TMP_B = CertKeyPair("/tmp/b.example.com/fullchain.pem",
                    "/tmp/b.example.com/privkey.pem")
FINAL_C = CertKeyPair("/etc/letsencrypt/live/c.example.com/fullchain.pem",
                      "/etc/letsencrypt/live/c.example.com/privkey.pem")
TMP_C = CertKeyPair("/tmp/c.example.com/fullchain.pem",
                    "/tmp/c.example.com/privkey.pem")

NO_CERT_B = """
server {
    listen 443 ssl;
    server_name b.example.com www.b.example.com;
}
"""

TMP_CERT_C = """
server {
    listen 443 ssl;
    server_name c.example.com;
    ssl_certificate /tmp/c.example.com/fullchain.pem;
    ssl_certificate_key /tmp/c.example.com/privkey.pem;
}
"""


class CertKeyPairTest(unittest.TestCase):
    """Tests for cert_key_pair."""

    def test_default_names(self):
        assert cert_key_pair("/etc/letsencrypt/live", "b.example.com",
                             util.make_config()) == FINAL_B

    def test_custom_names(self):
        config = util.make_config(cert_file="cert.pem", key_file="key.pem")
        assert cert_key_pair("/certs", "x.com", config) == \
            CertKeyPair("/certs/x.com/cert.pem", "/certs/x.com/key.pem")


class AssignInitialCertificateTest(unittest.TestCase):
    """Tests for CertificateLifecycle.assign_initial_certificates."""

    def _lifecycle(self, present=(), **kwargs):
        return CertificateLifecycle(util.make_config(**kwargs), util.exists_only(present))

    def test_tmp_cert_when_final_missing(self):
        lifecycle = self._lifecycle()
        conf = util.load_conf(NO_CERT_B)
        changes = lifecycle.assign_initial_certificates(conf)
        server = conf.servers[0]
        assert [(c.pair, c.final, c.replace) for c in changes] == [(TMP_B, False, False)]
        assert (server.ssl_certificate, server.ssl_certificate_key) == TMP_B
        assert lifecycle.classifier.cert_state(server) is CertState.TMP_CERT

    def test_direct_to_final(self):
        lifecycle = self._lifecycle(FINAL_B)
        conf = util.load_conf(NO_CERT_B)
        lifecycle.assign_initial_certificates(conf)
        server = conf.servers[0]
        assert (server.ssl_certificate, server.ssl_certificate_key) == FINAL_B
        assert lifecycle.classifier.cert_state(server) is CertState.FINAL_CERT
        assert conf.dumps() == util.http_conf("""
            server {
                listen 443 ssl;
                server_name b.example.com www.b.example.com;
                ssl_certificate /etc/letsencrypt/live/b.example.com/fullchain.pem;
                ssl_certificate_key /etc/letsencrypt/live/b.example.com/privkey.pem;
            }
        """)

    def test_final_needs_both_files(self):
        lifecycle = self._lifecycle([FINAL_B.cert])
        conf = util.load_conf(NO_CERT_B)
        lifecycle.assign_initial_certificates(conf)
        assert conf.servers[0].ssl_certificate == TMP_B.cert

    def test_probe_uses_primary_domain(self):
        lifecycle = self._lifecycle()
        lifecycle.assign_initial_certificates(util.load_conf(NO_CERT_B))
        probed = [call.args[0] for call in lifecycle.exists.call_args_list]
        assert FINAL_B.cert in probed
        assert not any("www.b.example.com" in path for path in probed)

    def test_leaves_other_servers_alone(self):
        lifecycle = self._lifecycle()
        conf = util.load_conf(TMP_CERT_C, """
            server {
                listen 80;
                server_name b.example.com;
            }
        """)
        before = conf.dumps()
        assert lifecycle.assign_initial_certificates(conf) == []
        assert conf.dumps() == before

    def test_second_run_is_noop(self):
        lifecycle = self._lifecycle()
        conf = util.load_conf(NO_CERT_B)
        lifecycle.assign_initial_certificates(conf)
        first = conf.dumps()
        assert lifecycle.assign_initial_certificates(conf) == []
        assert conf.dumps() == first

    def test_dry_run(self):
        lifecycle = self._lifecycle(dry_run=True)
        conf = util.load_conf(NO_CERT_B)
        changes = lifecycle.assign_initial_certificates(conf)
        assert len(changes) == 1
        assert conf.dumps() == util.http_conf(NO_CERT_B)

    def test_missing_primary_domain_aborts_whole_pass(self):
        lifecycle = self._lifecycle()
        conf = util.load_conf(NO_CERT_B, "server {\n    listen 443 ssl;\n}")
        with pytest.raises(errors.MalformedServerError):
            lifecycle.assign_initial_certificates(conf)
        assert conf.dumps() == util.http_conf(NO_CERT_B, "server {\n    listen 443 ssl;\n}")
        assert conf.servers[0].ssl_certificate is None


class PromoteTemporaryCertificateTest(unittest.TestCase):
    """Tests for CertificateLifecycle.promote_temporary_certificates."""

    def _lifecycle(self, present=(), **kwargs):
        return CertificateLifecycle(util.make_config(**kwargs), util.exists_only(present))

    def test_only_tmp_files_exist(self):
        lifecycle = self._lifecycle(TMP_C)
        conf = util.load_conf(TMP_CERT_C)
        before = conf.dumps()
        assert lifecycle.promote_temporary_certificates(conf) == []
        assert conf.dumps() == before

    def test_needs_both_final_files(self):
        lifecycle = self._lifecycle([FINAL_C.key])
        conf = util.load_conf(TMP_CERT_C)
        assert lifecycle.promote_temporary_certificates(conf) == []
        assert conf.dumps() == util.http_conf(TMP_CERT_C)

    def test_promotes(self):
        lifecycle = self._lifecycle(FINAL_C)
        conf = util.load_conf(TMP_CERT_C)
        changes = lifecycle.promote_temporary_certificates(conf)
        assert [(c.pair, c.final, c.replace) for c in changes] == [(FINAL_C, True, True)]
        server = conf.servers[0]
        assert list(server.values("ssl_certificate")) == [FINAL_C.cert]
        assert list(server.values("ssl_certificate_key")) == [FINAL_C.key]
        assert lifecycle.classifier.cert_state(server) is CertState.FINAL_CERT
        assert conf.dumps() == util.http_conf("""
            server {
                listen 443 ssl;
                server_name c.example.com;
                ssl_certificate /etc/letsencrypt/live/c.example.com/fullchain.pem;
                ssl_certificate_key /etc/letsencrypt/live/c.example.com/privkey.pem;
            }
        """)

    def test_final_servers_untouched(self):
        lifecycle = self._lifecycle(FINAL_B)
        conf = util.load_conf("""
            server {
                listen 443 ssl;
                server_name b.example.com;
                ssl_certificate /etc/ssl/b.pem;
                ssl_certificate_key /etc/ssl/b.key;
            }
        """)
        assert lifecycle.promote_temporary_certificates(conf) == []

    def test_dry_run(self):
        lifecycle = self._lifecycle(FINAL_C, dry_run=True)
        conf = util.load_conf(TMP_CERT_C)
        assert len(lifecycle.promote_temporary_certificates(conf)) == 1
        assert conf.dumps() == util.http_conf(TMP_CERT_C)

    def test_full_lifecycle(self):
        present = set()
        lifecycle = CertificateLifecycle(util.make_config(), lambda path: path in present)
        conf = util.load_conf(NO_CERT_B)
        server = conf.servers[0]

        lifecycle.assign_initial_certificates(conf)
        assert lifecycle.classifier.cert_state(server) is CertState.TMP_CERT

        lifecycle.promote_temporary_certificates(conf)
        assert lifecycle.classifier.cert_state(server) is CertState.TMP_CERT

        present.update(FINAL_B)
        lifecycle.promote_temporary_certificates(conf)
        assert lifecycle.classifier.cert_state(server) is CertState.FINAL_CERT
        assert lifecycle.promote_temporary_certificates(conf) == []


if __name__ == "__main__":
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
