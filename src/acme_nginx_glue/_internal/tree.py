"""Typed views over a parsed nginx configuration.

The parser produces nested lists; this module exposes the
http/server/location nesting the rest of the package works with. Views
read the underlying :class:`~.nginxparser.UnspacedList` live and write
through it, so dumping the tree afterwards serializes every edit while
leaving untouched parts of the file as they were.

"""
import enum
import io
import logging
from typing import Any
from typing import Callable
from typing import Generic
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Optional
from typing import Sequence
from typing import TypeVar

import pyparsing

from acme_nginx_glue import errors
from acme_nginx_glue import util
from acme_nginx_glue._internal import nginxparser
from acme_nginx_glue._internal.nginxparser import UnspacedList

logger = logging.getLogger(__name__)

INDENT = "    "

T = TypeVar("T")


class Shape(enum.Enum):
    """How many children of one kind a block holds."""
    ABSENT = "absent"
    SINGLE = "single"
    MANY = "many"


class Children(Generic[T]):
    """Children of one kind with an explicit cardinality tag.

    nginx allows most directives to appear zero, one or many times;
    callers iterate or use :meth:`first` without branching on how many
    there are.

    """

    def __init__(self, items: Iterable[T]) -> None:
        self._items: List[T] = list(items)

    @property
    def shape(self) -> Shape:
        """The cardinality tag."""
        if not self._items:
            return Shape.ABSENT
        if len(self._items) == 1:
            return Shape.SINGLE
        return Shape.MANY

    def first(self) -> Optional[T]:
        """The first child, or None if there is none."""
        return self._items[0] if self._items else None

    def any(self, predicate: Callable[[T], bool]) -> bool:
        """Does any child satisfy ``predicate``?"""
        return any(predicate(item) for item in self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return "Children({0}, {1!r})".format(self.shape.name, self._items)


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"'":
        return token[1:-1]
    return token


def _is_directive(entry: Any, name: str) -> bool:
    return (isinstance(entry, list) and len(entry) >= 1 and
            isinstance(entry[0], str) and entry[0] == name)


def _is_block(entry: Any, name: str) -> bool:
    return (isinstance(entry, list) and len(entry) == 2 and
            isinstance(entry[0], list) and len(entry[0]) >= 1 and entry[0][0] == name)


def _spaced_args(args: Sequence[str]) -> List[str]:
    spaced: List[str] = []
    for arg in args:
        spaced.extend([' ', arg])
    return spaced


class _Block:
    """A ``name args { ... }`` block at a given nesting depth."""

    def __init__(self, raw: UnspacedList, depth: int,
                 parent: Optional["_Block"] = None) -> None:
        self.raw = raw
        self.depth = depth
        self.parent = parent

    @property
    def args(self) -> List[str]:
        """Block arguments, e.g. ``['/foo']`` for ``location /foo``."""
        return list(self.raw[0][1:])

    @property
    def body(self) -> UnspacedList:
        """The directives inside the block."""
        return self.raw[1]

    def _child_indent(self) -> str:
        """Leading whitespace for a new child, copied from existing children."""
        for entry in self.body.spaced:
            if not isinstance(entry, list) or not entry:
                continue
            head = entry[0]
            if isinstance(head, list):
                head = head[0] if head else ''
            if nginxparser.spacey(head) and '\n' in head:
                return '\n' + head.rsplit('\n', 1)[1]
        # no children yet: one level deeper than the block itself
        own = self.raw.spaced[0][0] if self.raw.spaced[0] else ''
        if nginxparser.spacey(own) and '\n' in own:
            return '\n' + own.rsplit('\n', 1)[1] + INDENT
        return '\n' + INDENT * (self.depth + 1)

    def _append(self, entry: List[Any]) -> Any:
        item = self.body.append_to_block(entry)
        self._reflow()
        return item

    def _reflow(self) -> None:
        """Put each child and the closing brace of this block and its
        ancestors on a line of its own.

        Blocks that already have one entry per line are left as they are;
        only compact ones such as ``server { listen 80; }`` are rewritten.

        """
        indent = "\n" + INDENT * (self.depth + 1)
        for entry in self.body.spaced:
            if not isinstance(entry, list) or not entry or "#" in entry:
                continue
            tokens = entry[0] if isinstance(entry[0], list) else entry
            if not tokens:
                continue
            if nginxparser.spacey(tokens[0]):
                if "\n" not in tokens[0]:
                    tokens[0] = indent
            else:
                tokens.insert(0, indent)
        closing = "\n" + INDENT * self.depth
        if not self.body.has_trailing_space():
            self.body.append(closing)
        elif "\n" not in self.body.spaced[-1]:
            self.body.spaced[-1] = closing
        if self.parent is not None:
            self.parent._reflow()  # pylint: disable=protected-access

    def values(self, name: str) -> Children[str]:
        """Values of every ``name`` directive in this block.

        Arguments of one directive are joined by a single space and
        surrounding quotes are removed.

        """
        return Children(" ".join(_unquote(arg) for arg in entry[1:])
                        for entry in self.body if _is_directive(entry, name))

    def value(self, name: str) -> Optional[str]:
        """Value of the first ``name`` directive, if any."""
        return self.values(name).first()

    def add_directive(self, name: str, *args: str) -> None:
        """Append a ``name args;`` directive to this block."""
        self._append([self._child_indent(), name] + _spaced_args(args))

    def remove_directives(self, name: str) -> int:
        """Remove every ``name`` directive from this block.

        :returns: number of directives removed
        :rtype: int

        """
        removed = 0
        for index in reversed(range(len(self.body))):
            if _is_directive(self.body[index], name):
                del self.body[index]
                removed += 1
        return removed

    def _add_block(self, name: str, args: Sequence[str]) -> UnspacedList:
        indent = self._child_indent()
        return self._append([[indent, name] + _spaced_args(args) + [' '], [indent]])


class LocationBlock(_Block):
    """A ``location`` block."""

    @property
    def match(self) -> str:
        """Location arguments, e.g. ``/foo`` or ``= /foo``."""
        return " ".join(self.args)

    @property
    def proxy_pass(self) -> Optional[str]:
        """Target of the first ``proxy_pass`` directive."""
        return self.value("proxy_pass")

    @property
    def return_code(self) -> Optional[str]:
        """Argument(s) of the first ``return`` directive."""
        return self.value("return")

    def __repr__(self) -> str:
        return "LocationBlock({0!r})".format(self.match)


class ServerBlock(_Block):
    """A ``server`` block inside ``http``."""

    def __init__(self, raw: UnspacedList, depth: int,
                 parent: Optional[_Block] = None) -> None:
        super().__init__(raw, depth, parent)
        self._locations = [LocationBlock(entry, depth + 1, self)
                           for entry in self.body if _is_block(entry, "location")]

    @property
    def listen(self) -> Children[str]:
        """Every ``listen`` value of this server."""
        return self.values("listen")

    @property
    def server_names(self) -> List[str]:
        """Domain tokens of all ``server_name`` directives, in order.

        Empty names such as ``server_name "";`` are left out.

        """
        names: List[str] = []
        for entry in self.body:
            if _is_directive(entry, "server_name"):
                names.extend(name for name in map(_unquote, entry[1:]) if name)
        return names

    @property
    def primary_domain(self) -> Optional[str]:
        """First ``server_name`` token, used to derive certificate paths."""
        names = self.server_names
        return names[0] if names else None

    @property
    def ssl_certificate(self) -> Optional[str]:
        """Path of the first ``ssl_certificate`` directive."""
        return self.value("ssl_certificate")

    @property
    def ssl_certificate_key(self) -> Optional[str]:
        """Path of the first ``ssl_certificate_key`` directive."""
        return self.value("ssl_certificate_key")

    @property
    def locations(self) -> Children[LocationBlock]:
        """The ``location`` blocks of this server."""
        return Children(self._locations)

    def add_location(self, match: str) -> LocationBlock:
        """Append an empty ``location match { }`` block.

        :returns: the new location
        :rtype: LocationBlock

        """
        location = LocationBlock(self._add_block("location", match.split()), self.depth + 1,
                                 self)
        self._locations.append(location)
        return location

    def describe(self) -> str:
        """Short human readable label for log messages."""
        return " ".join(self.server_names) or "<no server_name>"

    def __repr__(self) -> str:
        return "ServerBlock({0!r})".format(self.describe())


class HttpBlock(_Block):
    """The ``http`` block."""

    def __init__(self, raw: UnspacedList, depth: int = 0) -> None:
        super().__init__(raw, depth)
        self._servers = [ServerBlock(entry, depth + 1, self)
                         for entry in self.body if _is_block(entry, "server")]

    @property
    def servers(self) -> Children[ServerBlock]:
        """The ``server`` blocks, in configuration order."""
        return Children(self._servers)

    def add_server(self) -> ServerBlock:
        """Append an empty ``server { }`` block.

        :returns: the new server
        :rtype: ServerBlock

        """
        server = ServerBlock(self._add_block("server", ()), self.depth + 1, self)
        self._servers.append(server)
        return server


class ConfigTree:
    """A whole parsed configuration file.

    :ivar UnspacedList parsed: the parsed file
    :ivar str filename: where it was read from, if anywhere

    """

    def __init__(self, parsed: UnspacedList, filename: Optional[str] = None) -> None:
        self.parsed = parsed
        self.filename = filename
        self.http: Optional[HttpBlock] = None
        for entry in parsed:
            if _is_block(entry, "http"):
                self.http = HttpBlock(entry)
                break

    @property
    def servers(self) -> List[ServerBlock]:
        """All servers of the http block; empty without one."""
        if self.http is None:
            return []
        return list(self.http.servers)

    def dumps(self) -> str:
        """Serialize the tree back to nginx syntax."""
        return nginxparser.dumps(self.parsed)


def loads(source: str, filename: Optional[str] = None) -> ConfigTree:
    """Parse a configuration from a string.

    :raises .errors.ParseError: if ``source`` is not valid nginx syntax

    """
    try:
        parsed = nginxparser.loads(source)
    except pyparsing.ParseBaseException as err:
        raise errors.ParseError("Could not parse {0}: {1}".format(
            filename or "configuration", err))
    return ConfigTree(parsed, filename)


def load(path: str) -> ConfigTree:
    """Read and parse the configuration file at ``path``.

    :param str path: file to read

    :returns: the parsed tree
    :rtype: ConfigTree

    :raises .errors.ParseError: if the file cannot be read or parsed

    """
    try:
        with io.open(path, "r", encoding="utf-8") as _file:
            source = _file.read()
    except UnicodeDecodeError:
        raise errors.ParseError("Could not read file: {0} due to invalid "
                                "character. Only UTF-8 encoding is "
                                "supported.".format(path))
    except (IOError, OSError) as err:
        raise errors.ParseError("Could not open file: {0}: {1}".format(path, err))
    logger.debug("Parsing %s", path)
    return loads(source, path)


def save(tree: ConfigTree, path: str) -> None:
    """Serialize ``tree`` and write it to ``path`` in one step.

    :raises .errors.Error: if the file cannot be written

    """
    out = tree.dumps()
    logger.debug('Writing nginx conf tree to %s:\n%s', path, out)
    try:
        util.atomic_write(path, out)
    except (IOError, OSError) as err:
        raise errors.Error("Could not write {0}: {1}".format(path, err))
