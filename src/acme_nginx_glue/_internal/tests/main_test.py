"""Tests for acme_nginx_glue._internal.main."""
import io
import os
import sys
from unittest import mock

import pytest

from acme_nginx_glue import errors
from acme_nginx_glue import main as public_main
from acme_nginx_glue._internal import main
from acme_nginx_glue._internal.tests import test_util as util

SOURCE = util.http_conf("""
    server {
        listen 443 ssl;
        server_name a.example.com;
    }
""", """
    server {
        listen 443 ssl;
        server_name b.example.com www.b.example.com;
    }
""", """
    server {
        listen 80;
        server_name b.example.com;
    }
""")


class FindCommandTest(util.TempDirTestCase):
    """Tests for command lookup."""

    def test_names_and_aliases(self):
        assert main.find_command("plan-forwarding") is main.COMMANDS["plan-forwarding"]
        for alias, name in main.ALIASES.items():
            assert main.find_command(alias) is main.COMMANDS[name]

    def test_unknown(self):
        with pytest.raises(errors.UnknownCommandError):
            main.find_command("make-coffee")
        with pytest.raises(errors.UnknownCommandError):
            main.find_command(None)


class MainTest(util.TempDirTestCase):
    """End to end tests for acme_nginx_glue._internal.main.main."""

    def setUp(self):
        super().setUp()
        self.source = os.path.join(self.tempdir, "nginx.conf")
        self.modified = self.source + ".modified"
        with open(self.source, "w") as handle:
            handle.write(SOURCE)
        patcher = mock.patch("acme_nginx_glue._internal.main.log.setup_logging")
        patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, *args):
        with mock.patch("sys.stdout", new_callable=io.StringIO) as stdout:
            result = main.main(["--file", self.source] + list(args))
        return result, stdout.getvalue()

    def _read(self, path):
        with open(path) as handle:
            return handle.read()

    def test_unknown_command(self):
        with mock.patch("sys.stderr", new_callable=io.StringIO) as stderr:
            with mock.patch("acme_nginx_glue._internal.main.tree_mod.load") as mock_load:
                result, _ = self._run("make-coffee")
        assert result == 1
        assert "usage:" in stderr.getvalue()
        mock_load.assert_not_called()
        assert not os.path.exists(self.modified)

    def test_report_needing_cert(self):
        result, out = self._run("report-needing-cert")
        assert result is None
        assert out == "a.example.com\nb.example.com,www.b.example.com\n"
        assert not os.path.exists(self.modified)

    def test_report_needing_cert_reads_source(self):
        with open(self.modified, "w") as handle:
            handle.write("http {\n}\n")
        _, out = self._run("find-servers-to-enhance")
        assert out == "a.example.com\nb.example.com,www.b.example.com\n"

    def test_report_tmp_cert_reads_staged_copy(self):
        _, out = self._run("report-tmp-cert")
        assert out == ""
        self._run("assign-certificates")
        _, out = self._run("report-tmp-cert")
        assert out == "a.example.com\nb.example.com,www.b.example.com\n"

    def test_phases(self):
        assert self._run("step1") == (None, "")
        assert self._read(self.source) == SOURCE
        staged = self._read(self.modified)
        assert staged.count("location /.well-known/acme-challenge/ {") == 2
        assert "server_name a.example.com www.b.example.com;\n        location / {" in staged

        # a second run builds on the staged copy and changes nothing
        self._run("plan-forwarding")
        assert self._read(self.modified) == staged

        final_a = ("/etc/letsencrypt/live/a.example.com/fullchain.pem",
                   "/etc/letsencrypt/live/a.example.com/privkey.pem")
        with mock.patch("acme_nginx_glue._internal.main.util.file_exists",
                        side_effect=lambda path: path in final_a):
            self._run("assign-certificates")
        staged = self._read(self.modified)
        assert "ssl_certificate /etc/letsencrypt/live/a.example.com/fullchain.pem;" in staged
        assert "ssl_certificate /tmp/b.example.com/fullchain.pem;" in staged

        _, out = self._run("report-tmp-cert")
        assert out == "b.example.com,www.b.example.com\n"

        final_b = ("/etc/letsencrypt/live/b.example.com/fullchain.pem",
                   "/etc/letsencrypt/live/b.example.com/privkey.pem")
        with mock.patch("acme_nginx_glue._internal.main.util.file_exists",
                        side_effect=lambda path: path in final_b):
            self._run("promote-certificates")
        staged = self._read(self.modified)
        assert "/tmp/" not in staged
        _, out = self._run("report-tmp-cert")
        assert out == ""
        assert self._read(self.source) == SOURCE

    def test_dry_run_writes_nothing(self):
        assert self._run("--dry-run", "plan-forwarding") == (None, "")
        assert not os.path.exists(self.modified)

    def test_parse_error(self):
        with open(self.source, "w") as handle:
            handle.write("http {\n    server {\n}\n")
        assert self._run("plan-forwarding")[0] == 1
        assert not os.path.exists(self.modified)

    def test_missing_file(self):
        os.remove(self.source)
        assert self._run("report-needing-cert")[0] == 1

    def test_malformed_server_aborts_without_write(self):
        with open(self.source, "w") as handle:
            handle.write(util.http_conf("""
                server {
                    listen 443 ssl;
                    server_name a.example.com;
                }
            """, """
                server {
                    listen 443 ssl;
                }
            """))
        assert self._run("assign-certificates")[0] == 1
        assert not os.path.exists(self.modified)

    def test_empty_topology(self):
        with open(self.source, "w") as handle:
            handle.write("events {\n}\n")
        assert self._run("plan-forwarding") == (None, "")
        assert self._read(self.modified) == "events {\n}\n"

    def test_modified_path(self):
        staged_dir = os.path.join(self.tempdir, "staged")
        os.mkdir(staged_dir)
        assert self._run("--modified-path", staged_dir, "plan-forwarding")[0] is None
        assert os.path.exists(os.path.join(staged_dir, "nginx.conf.modified"))

    def test_public_main(self):
        with mock.patch("acme_nginx_glue._internal.main.main") as mock_main:
            public_main.main(["report-tmp-cert"])
        mock_main.assert_called_once_with(["report-tmp-cert"])


class RunCommandTest(util.TempDirTestCase):
    """Tests for acme_nginx_glue._internal.main.run_command."""

    def test_exists_probe_is_passed_through(self):
        source = os.path.join(self.tempdir, "nginx.conf")
        with open(source, "w") as handle:
            handle.write(SOURCE)
        config = util.make_config(file=source)
        probe = util.exists_only([])
        main.run_command(config, main.COMMANDS["assign-certificates"], probe)
        assert probe.call_count > 0
        with open(config.modified_file) as handle:
            assert "ssl_certificate /tmp/a.example.com/fullchain.pem;" in handle.read()


if __name__ == "__main__":
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
