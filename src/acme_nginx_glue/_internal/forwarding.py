"""Adds locations and servers that forward HTTP-01 challenges to a solver."""
import logging
from typing import List
from typing import Optional
from typing import Tuple

from acme_nginx_glue._internal import constants
from acme_nginx_glue._internal.classifier import ServerClassifier
from acme_nginx_glue._internal.tree import ConfigTree
from acme_nginx_glue._internal.tree import ServerBlock
from acme_nginx_glue.configuration import GlueConfig

logger = logging.getLogger(__name__)


class ForwardingPlan:
    """Changes needed so every certificate-less TLS domain is reachable over HTTP.

    :ivar list locations: ``(server, domain)`` pairs; ``server`` is a
        plaintext server that gets a forwarding location, ``domain`` the
        first domain that required it
    :ivar list missing_domains: domains no plaintext server answers for,
        deduplicated in first-seen order

    """

    def __init__(self) -> None:
        self.locations: List[Tuple[ServerBlock, str]] = []
        self.missing_domains: List[str] = []

    def add_location(self, server: ServerBlock, domain: str) -> None:
        """Schedule a forwarding location for ``server`` unless one already is."""
        if not self.has_location(server):
            self.locations.append((server, domain))

    def has_location(self, server: ServerBlock) -> bool:
        """Is a forwarding location already scheduled for ``server``?"""
        return any(planned is server for planned, _ in self.locations)

    def add_missing_domain(self, domain: str) -> None:
        """Remember ``domain`` for the synthesized server."""
        if domain not in self.missing_domains:
            self.missing_domains.append(domain)

    def __bool__(self) -> bool:
        return bool(self.locations or self.missing_domains)

    def __repr__(self) -> str:
        return "ForwardingPlan(locations={0!r}, missing_domains={1!r})".format(
            self.locations, self.missing_domains)


class ForwardingPlanner:
    """Computes and applies challenge forwarding.

    Running it twice in a row changes nothing the second time: servers
    that got a forwarding location are recognized as having one, and the
    synthesized server answers plain HTTP for the formerly missing
    domains.

    :ivar config: configuration
    :type config: :class:`~acme_nginx_glue.configuration.GlueConfig`
    :ivar classifier: server queries
    :type classifier: :class:`~acme_nginx_glue._internal.classifier.ServerClassifier`

    """

    def __init__(self, config: GlueConfig,
                 classifier: Optional[ServerClassifier] = None) -> None:
        self.config = config
        self.classifier = classifier or ServerClassifier(config)

    def plan(self, tree: ConfigTree) -> ForwardingPlan:
        """Work out the forwarding changes without touching ``tree``."""
        plan = ForwardingPlan()
        servers = tree.servers
        for tls_server in self.classifier.servers_needing_cert(servers):
            for domain in tls_server.server_names:
                http_servers = self.classifier.servers_serving_http_for_domain(
                    servers, domain)
                if not http_servers:
                    plan.add_missing_domain(domain)
                    continue
                for http_server in http_servers:
                    if (self.classifier.has_forwarding_location(http_server) or
                            plan.has_location(http_server)):
                        continue
                    logger.debug("Adding location for domain %s in server %s",
                                 domain, http_server.describe())
                    plan.add_location(http_server, domain)
        if plan.missing_domains:
            logger.debug("Adding server for domains %s", ",".join(plan.missing_domains))
        return plan

    def apply(self, tree: ConfigTree, plan: ForwardingPlan) -> None:
        """Commit ``plan`` to ``tree``."""
        for server, _ in plan.locations:
            self._add_forwarding_location(server)
        if plan.missing_domains:
            self._add_forwarding_server(tree, plan.missing_domains)

    def create_forwarding_locations(self, tree: ConfigTree) -> ForwardingPlan:
        """Plan forwarding and, unless in dry-run mode, apply it.

        :returns: the computed plan
        :rtype: ForwardingPlan

        """
        plan = self.plan(tree)
        if not plan:
            logger.info("Challenge forwarding already in place")
        elif self.config.dry_run:
            logger.info("Dry run: not applying %r", plan)
        else:
            self.apply(tree, plan)
        return plan

    def _add_forwarding_location(self, server: ServerBlock) -> None:
        location = server.add_location(self.config.challenge_path)
        location.add_directive("proxy_pass", self.config.upstream)

    def _add_forwarding_server(self, tree: ConfigTree, domains: List[str]) -> ServerBlock:
        # Only reachable with needing-cert servers, which live in http
        assert tree.http is not None
        server = tree.http.add_server()
        server.add_directive("listen", constants.HTTP_PORT)
        server.add_directive("server_name", *domains)
        default = server.add_location(constants.DEFAULT_LOCATION)
        default.add_directive("return", constants.CLOSE_CONNECTION_CODE)
        self._add_forwarding_location(server)
        return server
