"""Parser of CAN-bus database (dbc) files.

    import dbcmodel
    with open('bus.dbc', 'rb') as f:
        model = dbcmodel.parse(f.read())
    rpm = model.message_by_name('ENGINE_DATA').signal('RPM')

The result is a read-only Model of nodes, messages, signals, value tables,
attributes and comments.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
from .bitlayout import BitLayout, ByteOrder, bit_positions
from .errors import (BitRangeOverflowError, DanglingReferenceError,
                     DatabaseWarning, DbcSyntaxError,
                     DuplicateIdentifierError, LexError,
                     MultipleMultiplexorsError, MultiplexorMissingError,
                     MultiplexValueError, ParseError, ParseErrorList,
                     SemanticError, UnrecognizedStatementWarning)
from .model import (AttributeDefinition, AttributeType, BitTiming, IdKind,
                    Message, MessageId, Model, MultiplexRole, Node,
                    ObjectType, Range, Signal, SignalGroup, ValueTable,
                    ValueType)
from .options import ParseOptions
from .parser import parse

__all__ = [
    'parse', 'ParseOptions',
    'Model', 'Node', 'Message', 'MessageId', 'IdKind', 'Signal',
    'SignalGroup', 'ValueTable', 'AttributeDefinition', 'AttributeType',
    'ObjectType', 'BitTiming', 'Range', 'ValueType', 'MultiplexRole',
    'BitLayout', 'ByteOrder', 'bit_positions',
    'ParseError', 'LexError', 'DbcSyntaxError', 'SemanticError',
    'DanglingReferenceError', 'DuplicateIdentifierError',
    'MultiplexorMissingError', 'MultipleMultiplexorsError',
    'MultiplexValueError', 'BitRangeOverflowError', 'ParseErrorList',
    'DatabaseWarning', 'UnrecognizedStatementWarning',
]
