"""acme-nginx-glue main entry point."""
import logging
import sys
from typing import Callable
from typing import Dict
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Union

import acme_nginx_glue
from acme_nginx_glue import errors
from acme_nginx_glue import util
from acme_nginx_glue._internal import cli
from acme_nginx_glue._internal import log
from acme_nginx_glue._internal import reporters
from acme_nginx_glue._internal import tree as tree_mod
from acme_nginx_glue._internal.certificates import CertificateLifecycle
from acme_nginx_glue._internal.classifier import ServerClassifier
from acme_nginx_glue._internal.forwarding import ForwardingPlanner
from acme_nginx_glue._internal.tree import ConfigTree
from acme_nginx_glue.configuration import GlueConfig

logger = logging.getLogger(__name__)

ExistsProbe = Callable[[str], bool]


def report_needing_cert(config: GlueConfig, tree: ConfigTree,
                        exists: ExistsProbe) -> None:  # pylint: disable=unused-argument
    """List TLS servers that still need a certificate."""
    reporters.report_needing_cert(tree, ServerClassifier(config))


def report_tmp_cert(config: GlueConfig, tree: ConfigTree,
                    exists: ExistsProbe) -> None:  # pylint: disable=unused-argument
    """List TLS servers that still use a temporary certificate."""
    reporters.report_tmp_cert(tree, ServerClassifier(config))


def plan_forwarding(config: GlueConfig, tree: ConfigTree,
                    exists: ExistsProbe) -> None:  # pylint: disable=unused-argument
    """Forward challenge requests for all domains that lack a certificate."""
    ForwardingPlanner(config).create_forwarding_locations(tree)


def assign_certificates(config: GlueConfig, tree: ConfigTree, exists: ExistsProbe) -> None:
    """Configure final or temporary certificates on certificate-less servers."""
    CertificateLifecycle(config, exists).assign_initial_certificates(tree)


def promote_certificates(config: GlueConfig, tree: ConfigTree, exists: ExistsProbe) -> None:
    """Replace temporary certificates whose final certificate is available."""
    CertificateLifecycle(config, exists).promote_temporary_certificates(tree)


class Command(NamedTuple):
    """A runnable command.

    ``reads_source`` commands always read the pristine source file, the
    others prefer the staged copy. ``mutating`` commands write the staged
    copy afterwards.
    """
    func: Callable[[GlueConfig, ConfigTree, ExistsProbe], None]
    reads_source: bool
    mutating: bool


COMMANDS: Dict[str, Command] = {
    "report-needing-cert": Command(report_needing_cert, reads_source=True, mutating=False),
    "report-tmp-cert": Command(report_tmp_cert, reads_source=False, mutating=False),
    "plan-forwarding": Command(plan_forwarding, reads_source=False, mutating=True),
    "assign-certificates": Command(assign_certificates, reads_source=False, mutating=True),
    "promote-certificates": Command(promote_certificates, reads_source=False, mutating=True),
}

ALIASES: Dict[str, str] = {
    "find-servers-to-enhance": "report-needing-cert",
    "find-servers-with-tmp-certs": "report-tmp-cert",
    "step1": "plan-forwarding",
    "create-forward-locations": "plan-forwarding",
    "step2": "assign-certificates",
    "add-tmp-or-existing-certs": "assign-certificates",
    "step3": "promote-certificates",
    "replace-tmp-with-final-certs": "promote-certificates",
}


def find_command(name: Optional[str]) -> Command:
    """Look up a command by name or alias.

    :raises .errors.UnknownCommandError: if there is no such command

    """
    if name is not None:
        name = ALIASES.get(name, name)
        if name in COMMANDS:
            return COMMANDS[name]
    raise errors.UnknownCommandError(
        "Unknown command: {0}".format(name) if name else "No command given")


def run_command(config: GlueConfig, command: Command,
                exists: Optional[ExistsProbe] = None) -> None:
    """Load the configuration, run ``command`` on it and persist the result.

    Nothing is written unless the whole command succeeded. In dry-run
    mode nothing is written at all.

    :raises .errors.Error: if the configuration cannot be read, a server
        is malformed or the result cannot be written

    """
    exists = exists or util.file_exists
    read_path = config.file if command.reads_source else config.staged_read_path()
    tree = tree_mod.load(read_path)
    if not tree.servers:
        logger.info("No servers found in %s, nothing to do", read_path)

    command.func(config, tree, exists)

    if not command.mutating:
        return
    if config.dry_run:
        logger.info("Dry run: not writing %s", config.modified_file)
        return
    tree_mod.save(tree, config.modified_file)
    logger.info("Saved configuration to %s", config.modified_file)


def main(cli_args: Optional[List[str]] = None) -> Optional[Union[str, int]]:
    """Run acme-nginx-glue.

    :param cli_args: command line to acme-nginx-glue, defaults to ``sys.argv[1:]``
    :type cli_args: `list` of `str`

    :returns: value for `sys.exit` about the exit status of acme-nginx-glue
    :rtype: `str` or `int` or `None`

    """
    if cli_args is None:
        cli_args = sys.argv[1:]

    # note: arg parser internally handles --help (and exits afterwards)
    args = cli.prepare_and_parse_args(cli_args)
    config = GlueConfig(args)
    log.setup_logging(config)
    logger.debug("acme-nginx-glue version: %s", acme_nginx_glue.__version__)
    logger.debug("Arguments: %r", cli_args)

    try:
        command = find_command(config.command)
    except errors.UnknownCommandError as err:
        logger.error(str(err))
        sys.stderr.write(cli.usage())
        return 1

    try:
        run_command(config, command)
    except errors.Error as err:
        logger.error(str(err))
        return 1
    return None
