"""Parsing of dbc text into a Model.

The text is split into statements, each statement is parsed into a record
on its own, and the records are assembled and validated in one pass.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
import logging

from .assembler import Assembler
from .errors import DbcSyntaxError, LexError
from .grammar import parse_statement
from .lexer import Lexer
from .options import Diagnostics, ParseOptions
from .validator import node_reference_errors, validate

log = logging.getLogger(__name__)


def decode(data, options):
    """Return data as text, decoding bytes as options say.

    Raises:
        LexError: If bytes cannot be decoded.
    """
    if isinstance(data, str):
        return data
    data = bytes(data)
    try:
        return data.decode(options.encoding, options.encoding_errors)
    except UnicodeDecodeError as err:
        line = data.count(b'\n', 0, err.start) + 1
        raise LexError("cannot decode byte 0x{:02X} as {}".format(
            data[err.start], options.encoding), line) from err


def parse(data, options=None):
    """Parse content of a dbc file.

    Args:
        data(str or bytes):    Content of the dbc file.
        options(ParseOptions): Options, defaults are used if None.

    Returns:
        Model object.

    Raises:
        LexError:         If the text cannot be split into statements.
        DbcSyntaxError:   If a statement does not follow its grammar.
        SemanticError:    If statements are inconsistent.
        ParseErrorList:   With all errors, if options.collect_all_errors.
    """
    if options is None:
        options = ParseOptions()
    text = decode(data, options)
    diag = Diagnostics(options)
    assembler = Assembler(diag)
    for statement in Lexer(text):
        try:
            record = parse_statement(statement)
        except DbcSyntaxError as err:
            diag.error(err)
            assembler.discard(statement)
            continue
        if record is None:
            diag.unrecognized(statement)
            continue
        assembler.add(record)
    assembler.resolve()
    for err in validate(assembler.messages, assembler.nodes):
        diag.error(err)
    for err in node_reference_errors(assembler.messages, assembler.nodes):
        diag.dangling(err.msg, err.line)
    diag.check()
    model = assembler.build()
    log.debug("parsed %d node(s) and %d message(s)", len(model.nodes),
              len(model.messages))
    return model
