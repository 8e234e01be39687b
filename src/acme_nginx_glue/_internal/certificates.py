"""Moves TLS servers from no certificate to a temporary and then a final one."""
import logging
import os
from typing import Callable
from typing import List
from typing import NamedTuple
from typing import Optional

from acme_nginx_glue import errors
from acme_nginx_glue import util
from acme_nginx_glue._internal.classifier import ServerClassifier
from acme_nginx_glue._internal.tree import ConfigTree
from acme_nginx_glue._internal.tree import ServerBlock
from acme_nginx_glue.configuration import GlueConfig

logger = logging.getLogger(__name__)


class CertKeyPair(NamedTuple):
    """Paths of a certificate and its private key."""
    cert: str
    key: str


def cert_key_pair(root_dir: str, domain: str, config: GlueConfig) -> CertKeyPair:
    """Certificate and key paths for ``domain`` below ``root_dir``.

    Both files live in a per-domain subdirectory, e.g.
    ``/etc/letsencrypt/live/example.com/fullchain.pem``.

    """
    return CertKeyPair(os.path.join(root_dir, domain, config.cert_file),
                       os.path.join(root_dir, domain, config.key_file))


class CertificateChange(NamedTuple):
    """One planned certificate transition.

    ``replace`` is set when the server's existing certificate directives
    are removed before the new pair is added.
    """
    server: ServerBlock
    pair: CertKeyPair
    final: bool
    replace: bool


class CertificateLifecycle:
    """Drives servers through NoCert, TmpCert and FinalCert.

    Each operation first plans the transitions of every affected server
    and only then edits the tree, so a malformed server aborts the whole
    pass before anything changed.

    :ivar config: configuration
    :type config: :class:`~acme_nginx_glue.configuration.GlueConfig`
    :ivar exists: existence probe for certificate files
    :ivar classifier: server queries
    :type classifier: :class:`~acme_nginx_glue._internal.classifier.ServerClassifier`

    """

    def __init__(self, config: GlueConfig,
                 exists: Callable[[str], bool] = util.file_exists,
                 classifier: Optional[ServerClassifier] = None) -> None:
        self.config = config
        self.exists = exists
        self.classifier = classifier or ServerClassifier(config)

    def _primary_domain(self, server: ServerBlock) -> str:
        domain = server.primary_domain
        if not domain:
            raise errors.MalformedServerError(
                "TLS server without server_name; cannot derive certificate paths", server)
        return domain

    def final_pair(self, server: ServerBlock) -> CertKeyPair:
        """Final certificate paths for ``server``."""
        return cert_key_pair(self.config.final_cert_dir, self._primary_domain(server),
                             self.config)

    def tmp_pair(self, server: ServerBlock) -> CertKeyPair:
        """Temporary certificate paths for ``server``."""
        return cert_key_pair(self.config.tmp_cert_dir, self._primary_domain(server),
                             self.config)

    def _pair_exists(self, pair: CertKeyPair) -> bool:
        return self.exists(pair.cert) and self.exists(pair.key)

    def plan_initial(self, tree: ConfigTree) -> List[CertificateChange]:
        """Certificates to add to servers that have none.

        :raises .errors.MalformedServerError: if a server needing a
            certificate has no primary domain

        """
        changes = []
        for server in self.classifier.servers_needing_cert(tree.servers):
            final = self.final_pair(server)
            if self._pair_exists(final):
                logger.debug("Directly using final cert for server %s", server.describe())
                changes.append(CertificateChange(server, final, final=True, replace=False))
            else:
                logger.debug("Adding tmp cert for server %s", server.describe())
                changes.append(CertificateChange(server, self.tmp_pair(server),
                                                 final=False, replace=False))
        return changes

    def plan_promotion(self, tree: ConfigTree) -> List[CertificateChange]:
        """Temporary certificates whose final replacement is on disk.

        :raises .errors.MalformedServerError: if a server with a
            temporary certificate has no primary domain

        """
        changes = []
        for server in self.classifier.servers_with_tmp_cert(tree.servers):
            final = self.final_pair(server)
            if self._pair_exists(final):
                logger.debug("Replacing tmp with final cert for server %s", server.describe())
                changes.append(CertificateChange(server, final, final=True, replace=True))
            else:
                logger.debug("Final cert for server %s not available yet", server.describe())
        return changes

    def apply(self, changes: List[CertificateChange]) -> None:
        """Commit planned changes to their servers."""
        for change in changes:
            if change.replace:
                change.server.remove_directives("ssl_certificate")
                change.server.remove_directives("ssl_certificate_key")
            change.server.add_directive("ssl_certificate", change.pair.cert)
            change.server.add_directive("ssl_certificate_key", change.pair.key)

    def _plan_and_apply(self, changes: List[CertificateChange]) -> List[CertificateChange]:
        if changes and self.config.dry_run:
            logger.info("Dry run: not applying %d certificate change(s)", len(changes))
        else:
            self.apply(changes)
        return changes

    def assign_initial_certificates(self, tree: ConfigTree) -> List[CertificateChange]:
        """Give every certificate-less TLS server a final or temporary certificate.

        :returns: the planned changes
        :rtype: list

        """
        return self._plan_and_apply(self.plan_initial(tree))

    def promote_temporary_certificates(self, tree: ConfigTree) -> List[CertificateChange]:
        """Swap temporary certificates for final ones where those exist.

        :returns: the planned changes
        :rtype: list

        """
        return self._plan_and_apply(self.plan_promotion(tree))
