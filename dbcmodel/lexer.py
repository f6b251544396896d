"""Splitting of dbc text into statements.

A statement ends at a line break that is not inside a quoted string, so a
comment text may span several lines. The symbol list of NS_ is written on
indented lines below the keyword; those lines are folded into the NS_
statement.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
import re
from dataclasses import dataclass

from .errors import LexError

_KEYWORD = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
_SPECIAL = re.compile(r'["\\\n]')
_COMMENT = re.compile(r'[ \t]*//[^\n]*')


@dataclass(frozen=True)
class Statement:
    """One logical statement of a dbc file.

    Attributes:
        line:   Line number where the statement starts, counting from 1.
        column: Column of the first character of text, counting from 0.
        text:   Statement text without surrounding whitespace.
    """
    line: int
    column: int
    text: str

    @property
    def keyword(self):
        """Leading identifier of the statement, or None.

        """
        match = _KEYWORD.match(self.text)
        if match is None:
            return None
        return match.group()


class Lexer:
    """Iterable of the statements in a dbc text.

    Each iteration starts again from the beginning of the text.
    """
    def __init__(self, text):
        """Initializes Lexer object.

        Args:
            text(str):  Content of a dbc file.
        """
        if text.startswith('\ufeff'):
            text = text[1:]
        self.text = text

    def __iter__(self):
        return self.statements()

    def lines(self):
        """Yield line number and text of each line, where quoted line
        breaks do not end a line.

        """
        text = self.text
        line = 1
        start = 0
        start_line = 1
        quote_line = None
        pos = 0
        while True:
            if quote_line is None and pos == start:
                # quotes in a comment line do not start a string
                comment = _COMMENT.match(text, pos)
                if comment is not None:
                    pos = comment.end()
            match = _SPECIAL.search(text, pos)
            if match is None:
                break
            c = match.group()
            n = match.start()
            pos = n + 1
            if c == '"':
                quote_line = line if quote_line is None else None
            elif c == '\\':
                if quote_line is not None:
                    if text[pos:pos + 1] == '\n':
                        line += 1
                    pos += 1
            elif quote_line is not None:
                line += 1
            else:
                yield start_line, text[start:n].rstrip('\r')
                line += 1
                start = pos
                start_line = line
        if quote_line is not None:
            raise LexError("string not terminated before end of text",
                           quote_line)
        if start < len(text):
            yield start_line, text[start:]

    def statements(self):
        """Yield Statement objects, dropping blank lines and comments.

        """
        pending = None  # NS_ statement collecting its symbol lines
        for line, raw in self.lines():
            stripped = raw.strip()
            if pending is not None:
                if not stripped or raw[:1] in (' ', '\t'):
                    pending[1].append(raw)
                    continue
                yield self._statement(*pending)
                pending = None
            if not stripped or stripped.startswith('//'):
                continue
            match = _KEYWORD.match(stripped)
            if match is not None and match.group() == 'NS_':
                pending = (line, [raw])
                continue
            yield self._statement(line, [raw])
        if pending is not None:
            yield self._statement(*pending)

    def _statement(self, line, raws):
        text = '\n'.join(raws)
        stripped = text.lstrip()
        return Statement(line, len(text) - len(stripped), stripped.rstrip())
