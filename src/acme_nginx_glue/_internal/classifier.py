"""Queries partitioning server blocks by TLS and certificate state."""
import enum
import logging
from typing import Iterable
from typing import List

from acme_nginx_glue import errors
from acme_nginx_glue._internal import constants
from acme_nginx_glue._internal.tree import LocationBlock
from acme_nginx_glue._internal.tree import ServerBlock
from acme_nginx_glue._internal.tree import Shape
from acme_nginx_glue.configuration import GlueConfig

logger = logging.getLogger(__name__)


class CertState(enum.Enum):
    """Where a TLS server is in its certificate lifecycle."""
    NO_CERT = "no-cert"
    TMP_CERT = "tmp-cert"
    FINAL_CERT = "final-cert"


class ServerClassifier:
    """Side-effect free queries over server blocks.

    :ivar config: configuration supplying the challenge path, the
        upstream and the tmp certificate root
    :type config: :class:`~acme_nginx_glue.configuration.GlueConfig`

    """

    def __init__(self, config: GlueConfig) -> None:
        self.config = config

    def is_tls(self, server: ServerBlock) -> bool:
        """Does the server listen with TLS?

        :raises .errors.MalformedServerError: if the server has no
            ``listen`` directive

        """
        listen = server.listen
        if listen.shape is Shape.ABSENT:
            raise errors.MalformedServerError(
                "Server {0} has no listen directive".format(server.describe()), server)
        return listen.any(lambda value: value.endswith(constants.SSL_LISTEN_SUFFIX))

    def cert_state(self, server: ServerBlock) -> CertState:
        """Certificate state of a server, ignoring whether it uses TLS."""
        cert = server.ssl_certificate
        key = server.ssl_certificate_key
        if cert is None and key is None:
            return CertState.NO_CERT
        tmp_root = self.config.tmp_cert_dir
        if (cert is not None and key is not None and
                cert.startswith(tmp_root) and key.startswith(tmp_root)):
            return CertState.TMP_CERT
        return CertState.FINAL_CERT

    def _tls_servers_in_state(self, servers: Iterable[ServerBlock],
                              state: CertState) -> List[ServerBlock]:
        return [server for server in servers
                if self.is_tls(server) and self.cert_state(server) is state]

    def servers_needing_cert(self, servers: Iterable[ServerBlock]) -> List[ServerBlock]:
        """TLS servers without any certificate configured."""
        return self._tls_servers_in_state(servers, CertState.NO_CERT)

    def servers_with_tmp_cert(self, servers: Iterable[ServerBlock]) -> List[ServerBlock]:
        """TLS servers whose certificate and key both live under the tmp root."""
        return self._tls_servers_in_state(servers, CertState.TMP_CERT)

    def servers_serving_http_for_domain(self, servers: Iterable[ServerBlock],
                                        domain: str) -> List[ServerBlock]:
        """Plaintext servers whose ``server_name`` holds exactly ``domain``."""
        return [server for server in servers
                if not self.is_tls(server) and domain in server.server_names]

    def is_forwarding_location(self, location: LocationBlock) -> bool:
        """Does the location proxy the challenge path to the upstream?"""
        return (location.match == self.config.challenge_path and
                location.proxy_pass == self.config.upstream)

    def has_forwarding_location(self, server: ServerBlock) -> bool:
        """Does any location of the server forward the challenge path?"""
        return server.locations.any(self.is_forwarding_location)
