"""Logging utilities for acme-nginx-glue.

`setup_logging` installs a terminal handler whose level follows the
``-v``/``--debug`` flags and an exception hook that reports fatal errors
before exiting. Diagnostics go to stderr; report commands write their
results to stdout, so the two never mix.

"""
import functools
import logging
import sys
import traceback
from types import TracebackType
from typing import IO
from typing import Optional
from typing import Type

from acme_nginx_glue import errors
from acme_nginx_glue import util
from acme_nginx_glue._internal import constants
from acme_nginx_glue.configuration import GlueConfig

# Logging format
CLI_FMT = "%(message)s"
DEBUG_FMT = "%(asctime)s:%(levelname)s:%(name)s:%(message)s"


logger = logging.getLogger(__name__)


def setup_logging(config: GlueConfig) -> None:
    """Setup terminal logging and the fatal exception hook.

    Calling it again replaces the handler installed by an earlier call.

    :param acme_nginx_glue.configuration.GlueConfig config: Configuration object

    """
    if config.debug:
        level = logging.DEBUG
    else:
        level = max(constants.DEFAULT_LOGGING_LEVEL - config.verbose_count * 10,
                    logging.DEBUG)

    stream_handler = ColoredStreamHandler()
    stream_handler.setFormatter(logging.Formatter(DEBUG_FMT if config.debug else CLI_FMT))
    stream_handler.setLevel(level)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, ColoredStreamHandler):
            root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG)  # send all records to handlers
    root_logger.addHandler(stream_handler)
    logger.debug('Root logging level set at %d', level)

    sys.excepthook = functools.partial(except_hook, debug=config.debug)


class ColoredStreamHandler(logging.StreamHandler):
    """Sends colored logging output to a stream.

    If the specified stream is not a tty, the class works like the
    standard `logging.StreamHandler`. Default red_level is
    `logging.WARNING`.

    :ivar bool colored: True if output should be colored
    :ivar bool red_level: The level at which to output

    """
    def __init__(self, stream: Optional[IO] = None) -> None:
        super().__init__(stream)
        self.colored = (sys.stderr.isatty() if stream is None else
                        stream.isatty())
        self.red_level = logging.WARNING

    def format(self, record: logging.LogRecord) -> str:
        """Formats the string representation of record.

        :param logging.LogRecord record: Record to be formatted

        :returns: Formatted, string representation of record
        :rtype: str

        """
        out = super().format(record)
        if self.colored and record.levelno >= self.red_level:
            return ''.join((util.ANSI_SGR_RED, out, util.ANSI_SGR_RESET))
        return out


def except_hook(exc_type: Type[BaseException], exc_value: BaseException,
                trace: TracebackType, debug: bool) -> None:
    """Logs fatal exceptions and reports them to the user.

    If debug is True, the full exception and traceback is shown to the
    user, otherwise, it is suppressed. sys.exit is always called with a
    nonzero status.

    :param type exc_type: type of the raised exception
    :param BaseException exc_value: raised exception
    :param traceback trace: traceback of where the exception was raised
    :param bool debug: True if the traceback should be shown to the user

    """
    exc_info = (exc_type, exc_value, trace)
    if debug or not issubclass(exc_type, Exception):
        if exc_type is KeyboardInterrupt:
            logger.error('Exiting due to user request.')
            sys.exit(1)
        logger.error('Exiting abnormally:', exc_info=exc_info)
    else:
        logger.debug('Exiting abnormally:', exc_info=exc_info)
        if issubclass(exc_type, errors.Error):
            logger.error(str(exc_value))
        else:
            logger.error('An unexpected error occurred:')
            # format_exception_only returns a list of strings each
            # terminated by a newline.
            output = traceback.format_exception_only(exc_type, exc_value)
            logger.error(''.join(output).rstrip())
    sys.exit(1)
