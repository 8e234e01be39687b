"""acme-nginx-glue user-supplied configuration."""
import argparse
import copy
import logging
import os
from typing import Any

from acme_nginx_glue._internal import constants

logger = logging.getLogger(__name__)


class GlueConfig:
    """Configuration wrapper around :class:`argparse.Namespace`.

    Every component receives one of these at construction instead of
    reading process-wide state. Attribute access is delegated to the
    wrapped namespace, so all keys of
    :data:`acme_nginx_glue._internal.constants.CLI_DEFAULTS` are available
    as attributes. The following are derived:

      - `challenge_path`
      - `upstream`
      - `modified_file`

    :ivar namespace: Namespace typically produced by
        :meth:`argparse.ArgumentParser.parse_args`.
    :type namespace: :class:`argparse.Namespace`

    """

    def __init__(self, namespace: argparse.Namespace) -> None:
        self.namespace: argparse.Namespace
        # Avoid recursion loop because of the delegation defined in __setattr__
        object.__setattr__(self, 'namespace', namespace)

    @classmethod
    def from_defaults(cls, **kwargs: Any) -> "GlueConfig":
        """Build a configuration from the CLI defaults.

        :param kwargs: values overriding the defaults

        :returns: a new configuration
        :rtype: GlueConfig

        """
        values = copy.deepcopy(constants.CLI_DEFAULTS)
        unknown = set(kwargs) - set(values)
        if unknown:
            raise TypeError("Unknown configuration keys: {0}".format(
                ", ".join(sorted(unknown))))
        values.update(kwargs)
        return cls(argparse.Namespace(**values))

    def __getattr__(self, name: str) -> Any:
        return getattr(self.namespace, name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self.namespace, name, value)

    @property
    def challenge_path(self) -> str:
        """Location match path that must be forwarded to the challenge solver."""
        return self.namespace.proxy_location

    @property
    def upstream(self) -> str:
        """``proxy_pass`` target of forwarding locations."""
        return self.namespace.proxy_upstream

    @property
    def modified_file(self) -> str:
        """Path of the staged copy that mutating commands write to."""
        path = self.namespace.file
        if self.namespace.modified_path:
            path = os.path.join(self.namespace.modified_path, os.path.basename(path))
        if self.namespace.modified_extension:
            path += self.namespace.modified_extension
        return path

    def staged_read_path(self) -> str:
        """Path to read for commands that build on earlier phases.

        The staged copy wins when it exists and is distinct from the
        source, otherwise the source file is read.

        """
        source = self.namespace.file
        modified = self.modified_file
        if modified != source and os.path.exists(modified):
            logger.debug("Reading staged configuration %s", modified)
            return modified
        return source

    def __deepcopy__(self, _memo: Any) -> "GlueConfig":
        # __getattr__ delegation would recurse on a half-built copy
        new_ns = copy.deepcopy(self.namespace)
        return type(self)(new_ns)
