"""Very low-level nginx config parser based on pyparsing."""
# Forked from https://github.com/fatiherikli/nginxparser (MIT Licensed)
import logging
import operator
from typing import Any
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Tuple

from pyparsing import Combine
from pyparsing import Forward
from pyparsing import Group
from pyparsing import Literal
from pyparsing import Optional as Opt
from pyparsing import ParseResults
from pyparsing import QuotedString
from pyparsing import Regex
from pyparsing import restOfLine
from pyparsing import stringEnd
from pyparsing import White
from pyparsing import ZeroOrMore

logger = logging.getLogger(__name__)


class RawNginxParser:
    # pylint: disable=pointless-statement
    """A class that parses nginx configuration with pyparsing."""

    # constants
    space = Opt(White()).leaveWhitespace()
    required_space = White().leaveWhitespace()

    left_bracket = Literal("{").suppress()
    right_bracket = space + Literal("}").suppress()
    semicolon = Literal(";").suppress()
    dquoted = QuotedString('"', multiline=True, unquoteResults=False, escChar='\\')
    squoted = QuotedString("'", multiline=True, unquoteResults=False, escChar='\\')
    quoted = dquoted | squoted
    head_tokenchars = Regex(r"(\$\{)|[^{};\s'\"]")
    tail_tokenchars = Regex(r"(\$\{)|[^{;\s]")
    tokenchars = Combine(head_tokenchars + ZeroOrMore(tail_tokenchars))
    paren_quote_extend = Combine(quoted + Literal(')') + ZeroOrMore(tail_tokenchars))

    token = paren_quote_extend | tokenchars | quoted

    whitespace_token_group = space + token + ZeroOrMore(required_space + token) + space
    assignment = whitespace_token_group + semicolon

    comment = space + Literal('#') + restOfLine

    block = Forward()

    # order matters! a comment may hold braces, e.g. "http { # server {"
    contents = Group(comment) | Group(block) | Group(assignment)

    block_begin = Group(whitespace_token_group)
    block_innards = Group(ZeroOrMore(contents) + space).leaveWhitespace()
    block << block_begin + left_bracket + block_innards + right_bracket

    script = ZeroOrMore(contents) + space + stringEnd
    script.parseWithTabs().leaveWhitespace()

    def __init__(self, source: str) -> None:
        self.source = source

    def parse(self) -> ParseResults:
        """Returns the parsed tree."""
        return self.script.parseString(self.source)

    def as_list(self) -> List[Any]:
        """Returns the parsed tree as a list."""
        return self.parse().asList()


class RawNginxDumper:
    """Turns a spaced parse tree back into nginx syntax."""

    def __init__(self, blocks: List[Any]) -> None:
        self.blocks = blocks

    def _dump(self, entries: Iterable[Any]) -> Iterator[str]:
        for entry in entries:
            if isinstance(entry, str):
                yield entry
                continue
            if entry and spacey(entry[0]):
                yield entry[0]
                entry = entry[1:]
                if not entry:
                    continue
            if isinstance(entry[0], list):
                head, body = entry
                yield "".join(head) + "{"
                yield from self._dump(body)
                yield "}"
            elif entry[0].strip() == "#":
                yield "".join(entry)
            else:
                yield "".join(entry) + ";"

    def __str__(self) -> str:
        return "".join(self._dump(self.blocks))


def spacey(x: Any) -> bool:
    """Is ``x`` a whitespace-only (or empty) token?"""
    return (isinstance(x, str) and x.isspace()) or x == ''


class UnspacedList(List[Any]):
    """A parse tree list with whitespace entries hidden.

    The visible items are what the tree model reads. The ``spaced`` twin
    holds the same entries plus the whitespace between them, and is what
    gets dumped, so parts of the file that were not edited keep their
    formatting.

    Only :meth:`append`, :meth:`append_to_block` and ``del`` keep both
    lists in step.

    """

    def __init__(self, list_source: Iterable[Any]) -> None:
        source = list(list_source)
        self.spaced = list(source)
        super().__init__(source)
        for i in reversed(range(len(self))):
            entry = self[i]
            if isinstance(entry, list):
                sublist = UnspacedList(entry)
                super().__setitem__(i, sublist)
                self.spaced[i] = sublist.spaced
            elif spacey(entry) and "#" not in self[:i]:
                # whitespace inside a comment is part of its text
                super().__delitem__(i)

    @staticmethod
    def _coerce(inbound: Any) -> Tuple[Any, Any]:
        """Visible and spaced forms of a new entry."""
        if not isinstance(inbound, list):
            return inbound, inbound
        if not isinstance(inbound, UnspacedList):
            inbound = UnspacedList(inbound)
        return inbound, inbound.spaced

    def append(self, x: Any) -> None:
        """Append an entry, or bare whitespace, at the very end."""
        item, spaced_item = self._coerce(x)
        self.spaced.append(spaced_item)
        if not spacey(item):
            super().append(item)

    def append_to_block(self, x: Any) -> Any:
        """Append an entry to a block body, ahead of its trailing whitespace.

        The whitespace that precedes a block's closing brace stays last, so
        the brace keeps its own line and indentation.

        :param x: the entry to add
        :returns: the entry as stored in the visible list
        """
        item, spaced_item = self._coerce(x)
        pos = len(self.spaced)
        while pos > 0 and spacey(self.spaced[pos - 1]):
            pos -= 1
        self.spaced.insert(pos, spaced_item)
        if not spacey(item):
            super().append(item)
        return item

    def has_trailing_space(self) -> bool:
        """Does the spaced list end in whitespace?"""
        return bool(self.spaced) and spacey(self.spaced[-1])

    def __delitem__(self, i: Any) -> None:
        del self.spaced[self._spaced_position(i)]
        super().__delitem__(i)

    def _spaced_position(self, idx: Any) -> int:
        """Position in ``spaced`` of the visible entry at ``idx``."""
        idx = operator.index(idx)
        if idx < 0:
            idx += len(self)
        if not 0 <= idx < len(self):
            raise IndexError("list index out of range")
        seen = -1
        for pos, entry in enumerate(self.spaced):
            if not spacey(entry):
                seen += 1
                if seen == idx:
                    return pos
        raise IndexError("list index out of range")


def loads(source: str) -> UnspacedList:
    """Parses from a string.

    :param str source: The string to parse
    :returns: The parsed tree
    :rtype: UnspacedList

    :raises pyparsing.ParseException: if ``source`` is not valid nginx syntax

    """
    return UnspacedList(RawNginxParser(source).as_list())


def dumps(blocks: UnspacedList) -> str:
    """Dump to a string.

    :param UnspacedList blocks: The parsed tree
    :rtype: str

    """
    return str(RawNginxDumper(blocks.spaced))
