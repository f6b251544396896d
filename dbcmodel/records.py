"""Typed records produced by the statement grammars.

There is one record class per statement keyword. Every record carries the
line number of its statement. Message identifiers are kept as the 32 bit
values written in the text.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
from dataclasses import dataclass
from typing import Optional

from .bitlayout import ByteOrder
from .model import AttributeType, ObjectType


@dataclass(frozen=True)
class Target:
    """Object a comment or attribute value refers to.

    Attributes:
        object_type: ObjectType of the object.
        frame_id:    Message identifier for messages and signals.
        name:        Name of node, signal or environment variable.
    """
    object_type: ObjectType
    frame_id: Optional[int] = None
    name: Optional[str] = None

    def __str__(self):
        if self.object_type is ObjectType.NETWORK:
            return "network"
        if self.object_type is ObjectType.MESSAGE:
            return "message {}".format(self.frame_id)
        if self.object_type is ObjectType.SIGNAL:
            return "signal \"{}\" of message {}".format(self.name,
                                                        self.frame_id)
        if self.object_type is ObjectType.NODE:
            return "node \"{}\"".format(self.name)
        return "environment variable \"{}\"".format(self.name)


NETWORK = Target(ObjectType.NETWORK)


@dataclass(frozen=True)
class VersionRecord:
    line: int
    version: str


@dataclass(frozen=True)
class NewSymbolsRecord:
    line: int
    symbols: tuple


@dataclass(frozen=True)
class BitTimingRecord:
    """BS_ statement, all values None when no timing is given.

    """
    line: int
    baudrate: Optional[int] = None
    btr1: Optional[int] = None
    btr2: Optional[int] = None


@dataclass(frozen=True)
class NodesRecord:
    line: int
    names: tuple


@dataclass(frozen=True)
class ValueTableRecord:
    line: int
    name: str
    entries: tuple  # (value, label) pairs


@dataclass(frozen=True)
class MessageRecord:
    line: int
    frame_id: int
    name: str
    size: int
    transmitter: Optional[str]


@dataclass(frozen=True)
class SignalRecord:
    line: int
    name: str
    multiplex_value: Optional[int]
    is_multiplexor: bool
    start_bit: int
    length: int
    byte_order: ByteOrder
    is_signed: bool
    factor: float
    offset: float
    minimum: float
    maximum: float
    unit: str
    receivers: tuple


@dataclass(frozen=True)
class TransmittersRecord:
    line: int
    frame_id: int
    transmitters: tuple


@dataclass(frozen=True)
class CommentRecord:
    line: int
    target: Target
    text: str


@dataclass(frozen=True)
class AttributeDefinitionRecord:
    line: int
    object_type: ObjectType
    name: str
    value_type: AttributeType
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: tuple = ()


@dataclass(frozen=True)
class AttributeDefaultRecord:
    line: int
    name: str
    value: object


@dataclass(frozen=True)
class AttributeValueRecord:
    line: int
    name: str
    target: Target
    value: object


@dataclass(frozen=True)
class ValueDescriptionRecord:
    """VAL_ statement.

    Either entries holds (value, label) pairs, or table_name names a value
    table. frame_id is None for environment variables.
    """
    line: int
    frame_id: Optional[int]
    name: str
    entries: tuple = ()
    table_name: Optional[str] = None


@dataclass(frozen=True)
class SignalGroupRecord:
    line: int
    frame_id: int
    name: str
    repetitions: int
    signal_names: tuple


@dataclass(frozen=True)
class SignalValueTypeRecord:
    line: int
    frame_id: int
    signal_name: str
    value_type: int  # 0 integer, 1 float, 2 double


@dataclass(frozen=True)
class MultiplexRangeRecord:
    line: int
    frame_id: int
    signal_name: str
    multiplexor_name: str
    ranges: tuple  # (low, high) pairs
