"""Read-only listings of servers with outstanding certificate work.

Each matching server is printed on its own line as its comma-separated
domains, for consumption by whatever requests the certificates.

"""
import logging
import sys
from typing import IO
from typing import List
from typing import Optional

from acme_nginx_glue._internal.classifier import ServerClassifier
from acme_nginx_glue._internal.tree import ConfigTree
from acme_nginx_glue._internal.tree import ServerBlock

logger = logging.getLogger(__name__)


def _report(servers: List[ServerBlock], out: Optional[IO[str]]) -> List[str]:
    out = out or sys.stdout
    lines = []
    for server in servers:
        if not server.server_names:
            logger.warning("Skipping TLS server without server_name")
            continue
        lines.append(",".join(server.server_names))
    for line in lines:
        out.write(line + "\n")
    return lines


def report_needing_cert(tree: ConfigTree, classifier: ServerClassifier,
                        out: Optional[IO[str]] = None) -> List[str]:
    """Print the domains of TLS servers without a certificate.

    :returns: the printed lines
    :rtype: list

    """
    return _report(classifier.servers_needing_cert(tree.servers), out)


def report_tmp_cert(tree: ConfigTree, classifier: ServerClassifier,
                    out: Optional[IO[str]] = None) -> List[str]:
    """Print the domains of TLS servers that still use a temporary certificate.

    :returns: the printed lines
    :rtype: list

    """
    return _report(classifier.servers_with_tmp_cert(tree.servers), out)
