"""Command line argument & config processing."""
import argparse
import copy
import logging
from typing import Any
from typing import List
from typing import Optional

import configargparse

import acme_nginx_glue
from acme_nginx_glue._internal import constants

logger = logging.getLogger(__name__)

SHORT_USAGE = """
  acme-nginx-glue [OPTIONS] COMMAND

Commands:
  report-needing-cert    List domains of TLS servers without a certificate
  report-tmp-cert        List domains of TLS servers with a temporary certificate
  plan-forwarding        Forward ACME HTTP-01 challenges for domains lacking a certificate
  assign-certificates    Point certificate-less TLS servers at final or temporary certificates
  promote-certificates   Replace temporary certificates whose final ones exist

The source file is never modified; mutating commands write the staged
copy (see --modified-extension and --modified-path) and later commands
build on it.
"""

ENV_PREFIX = "ACME_NGINX_GLUE_"


def flag_default(name: str) -> Any:
    """Default value for CLI flag."""
    return copy.deepcopy(constants.CLI_DEFAULTS[name])


def _env_var(dest: str) -> str:
    return ENV_PREFIX + dest.upper()


def _create_parser() -> configargparse.ArgParser:
    parser = configargparse.ArgParser(
        prog="acme-nginx-glue",
        usage=SHORT_USAGE,
        args_for_setting_config_path=["-c", "--config"],
        default_config_files=flag_default("config_files"),
        config_arg_help_message="path to config file (default: {0})".format(
            " and ".join(flag_default("config_files"))))

    parser.add_argument(
        "command", nargs="?", default=flag_default("command"),
        help="command to run, see above")
    parser.add_argument(
        "-v", "--verbose", dest="verbose_count", action="count",
        default=flag_default("verbose_count"), help="This flag can be used "
        "multiple times to incrementally increase the verbosity of output, "
        "e.g. -vvv.")
    parser.add_argument(
        "--debug", action="store_true", default=flag_default("debug"),
        help="Show every diagnostic message and tracebacks of fatal errors.")
    parser.add_argument(
        "--dry-run", "--dry", dest="dry_run", action="store_true",
        default=flag_default("dry_run"),
        help="Compute and log changes without applying or writing them.")
    parser.add_argument(
        "--version", action="version",
        version="%(prog)s {0}".format(acme_nginx_glue.__version__))

    paths = parser.add_argument_group(
        "paths", description="Source configuration and its staged copy")
    paths.add_argument(
        "-f", "--file", default=flag_default("file"), env_var=_env_var("file"),
        help="nginx configuration file to read.")
    paths.add_argument(
        "--modified-extension", default=flag_default("modified_extension"),
        env_var=_env_var("modified_extension"),
        help="Suffix appended to the staged copy's file name.")
    paths.add_argument(
        "--modified-path", default=flag_default("modified_path"),
        env_var=_env_var("modified_path"),
        help="Directory for the staged copy. Defaults to the source's directory.")

    challenge = parser.add_argument_group(
        "challenge", description="Forwarding of ACME HTTP-01 challenges")
    challenge.add_argument(
        "--proxy-location", default=flag_default("proxy_location"),
        env_var=_env_var("proxy_location"),
        help="Location path that is forwarded to the challenge solver.")
    challenge.add_argument(
        "--proxy-upstream", default=flag_default("proxy_upstream"),
        env_var=_env_var("proxy_upstream"),
        help="URL of the challenge solver, used as proxy_pass target.")

    certs = parser.add_argument_group(
        "certificates", description="Where temporary and final certificates live")
    certs.add_argument(
        "--tmp-cert-dir", default=flag_default("tmp_cert_dir"),
        env_var=_env_var("tmp_cert_dir"),
        help="Root directory of temporary certificates.")
    certs.add_argument(
        "--final-cert-dir", default=flag_default("final_cert_dir"),
        env_var=_env_var("final_cert_dir"),
        help="Root directory of issued certificates.")
    certs.add_argument(
        "--cert-file", default=flag_default("cert_file"),
        env_var=_env_var("cert_file"),
        help="Certificate file name inside a domain's directory.")
    certs.add_argument(
        "--key-file", default=flag_default("key_file"),
        env_var=_env_var("key_file"),
        help="Private key file name inside a domain's directory.")
    return parser


def usage() -> str:
    """Usage text printed for unknown commands."""
    return "usage: {0}".format(SHORT_USAGE.lstrip("\n"))


def prepare_and_parse_args(args: Optional[List[str]]) -> argparse.Namespace:
    """Returns parsed command line arguments.

    :param list args: command line arguments with the program name removed

    :returns: parsed command line arguments
    :rtype: argparse.Namespace

    """
    parser = _create_parser()
    return parser.parse_args(args)
