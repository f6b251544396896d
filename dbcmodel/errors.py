"""Errors and warnings reported while parsing dbc text.

Syntax errors carry line and column of the offending token, semantic
errors the line of the statement that introduced the problem.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#


class ParseError(Exception):
    """Base class of all errors raised by dbcmodel.parse.

    """
    def __init__(self, msg, line=None):
        """Initializes ParseError object.

        Args:
            msg(str):  Informative description of error.
            line(int): Line number of error, None if not tied to a line.
        """
        super().__init__(msg)
        self.msg = msg
        self.line = line

    def __str__(self):
        if self.line is None:
            return self.msg
        return "{} at line {}".format(self.msg, self.line)


class LexError(ParseError):
    """Text cannot be split into statements, e.g. unterminated string.

    """


class DbcSyntaxError(ParseError):
    """Statement does not match the grammar of its keyword.

    """
    def __init__(self, msg, line, col, expected=None, found=None):
        """Initializes DbcSyntaxError object.

        Args:
            msg(str):      Informative description of error.
            line(int):     Line number of error.
            col(int):      Column number of error.
            expected(str): What the grammar expected.
            found(str):    Text found instead.
        """
        super().__init__(msg, line)
        self.col = col
        self.expected = expected
        self.found = found

    def __str__(self):
        return "{} line {}, column {}".format(self.msg, self.line, self.col)


class SemanticError(ParseError):
    """Statements are well formed but inconsistent with each other.

    """


class DanglingReferenceError(SemanticError):
    """Reference to a node, message, signal, table or attribute that is
    not defined.

    """


class DuplicateIdentifierError(SemanticError):
    """Entity defined more than once.

    """


class MultiplexorMissingError(SemanticError):
    """Multiplexed signal without a multiplexor to select it.

    """


class MultipleMultiplexorsError(SemanticError):
    """More than one multiplexor where only one is allowed.

    """


class MultiplexValueError(SemanticError):
    """Switch value of a multiplexed signal cannot be selected.

    """


class BitRangeOverflowError(SemanticError):
    """Signal bits do not fit the message, or the length is invalid.

    """


class ParseErrorList(ParseError):
    """All errors found when every error is collected.

    """
    def __init__(self, errors):
        """Initializes ParseErrorList object.

        Args:
            errors(list): ParseError objects in order of detection.
        """
        super().__init__("{} error(s) in dbc text".format(len(errors)),
                         errors[0].line if errors else None)
        self.errors = list(errors)

    def __str__(self):
        return "\n".join(str(e) for e in self.errors)

    def __iter__(self):
        return iter(self.errors)

    def __len__(self):
        return len(self.errors)


class DatabaseWarning(Warning):
    """Warnings about inconsistencies or ambiguities and how they are resolved.

    """


class UnrecognizedStatementWarning(DatabaseWarning):
    """Statement with an unknown keyword was skipped.

    """
