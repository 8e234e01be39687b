"""acme-nginx-glue constants."""
import logging
import os
from typing import Any
from typing import Dict

CLI_DEFAULTS: Dict[str, Any] = dict(  # noqa
    config_files=[
        # https://freedesktop.org/wiki/Software/xdg-user-dirs/
        os.path.join(os.environ.get("XDG_CONFIG_HOME", "~/.config"),
                     "acme-nginx-glue", "cli.ini"),
    ],

    command=None,
    verbose_count=0,
    debug=False,
    dry_run=False,

    # Source and staged configuration files
    file="nginx.conf",
    modified_extension=".modified",
    modified_path="",

    # HTTP-01 challenge forwarding
    proxy_location="/.well-known/acme-challenge/",
    proxy_upstream="http://localhost:8080",

    # Certificate locations
    tmp_cert_dir="/tmp",
    final_cert_dir="/etc/letsencrypt/live",
    cert_file="fullchain.pem",
    key_file="privkey.pem",
)
"""Defaults for CLI flags and `.GlueConfig` attributes."""

DEFAULT_LOGGING_LEVEL = logging.WARNING
"""Terminal logging level without -v or --debug."""

HTTP_PORT = "80"
"""Port the synthesized challenge server listens on."""

DEFAULT_LOCATION = "/"
"""Match path of the catch-all location of a synthesized server."""

CLOSE_CONNECTION_CODE = "444"
"""nginx non-standard code that closes the connection without a response."""

SSL_LISTEN_SUFFIX = "ssl"
"""A ``listen`` value ending with this marks a TLS server."""
