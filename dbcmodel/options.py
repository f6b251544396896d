"""Parse options and the routing of errors and warnings they control."""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
import logging
import warnings
from dataclasses import dataclass

from .errors import (DanglingReferenceError, DatabaseWarning, ParseErrorList,
                     UnrecognizedStatementWarning)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseOptions:
    """Options of a parse call.

    Attributes:
        strict_references:  Fail on dangling node, table, message and
                            attribute references instead of warning.
        collect_all_errors: Raise ParseErrorList with every error instead
                            of raising the first one.
        warn_unrecognized:  Issue UnrecognizedStatementWarning for skipped
                            statements.
        encoding:           Codec used when bytes are parsed.
        encoding_errors:    Error handler of the codec, "replace" for lossy
                            decoding.
    """
    strict_references: bool = False
    collect_all_errors: bool = False
    warn_unrecognized: bool = False
    encoding: str = 'utf-8'
    encoding_errors: str = 'strict'


class Diagnostics:
    """Raises, collects or warns about problems found during one parse.

    """
    def __init__(self, options):
        self.options = options
        self.errors = []

    def error(self, err):
        """Raise err, or record it when all errors are collected.

        """
        if not self.options.collect_all_errors:
            raise err
        log.debug("collected %s", err)
        self.errors.append(err)

    def warn(self, msg, category=DatabaseWarning):
        warnings.warn(msg, category, stacklevel=2)

    def dangling(self, msg, line):
        """Report a reference to something that is not defined.

        """
        err = DanglingReferenceError(msg, line)
        if self.options.strict_references:
            self.error(err)
        else:
            self.warn(str(err))

    def unrecognized(self, statement):
        word = statement.keyword or statement.text.split(None, 1)[0]
        log.debug("skipping statement \"%s\" at line %d", word, statement.line)
        if self.options.warn_unrecognized:
            self.warn("skipped unrecognized statement \"{}\" at line {}".format(
                word, statement.line), UnrecognizedStatementWarning)

    def check(self):
        """Raise collected errors, if any.

        """
        if self.errors:
            raise ParseErrorList(self.errors)
