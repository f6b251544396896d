"""Read-only model of the content of a dbc file.

The model is produced by dbcmodel.parse and not modified afterwards:
entities are frozen dataclasses, sequences are tuples and mappings are
read-only views. Equality is structural. Entities are hashable; their
mappings take part in comparisons but not in hash values.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
import enum
import textwrap
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from .bitlayout import BitLayout, ByteOrder

EXTENDED_FLAG = 0x80000000
MAX_ENCODED_ID = 0xFFFFFFFF
MAX_STANDARD_ID = 0x7FF
MAX_EXTENDED_ID = 0x1FFFFFFF

NO_NODE = 'Vector__XXX'

_EMPTY = MappingProxyType({})


def frozen_mapping(d):
    """Return read-only view of a copy of dictionary d.

    """
    return MappingProxyType(dict(d))


def mapping_field():
    """Return dataclass field defaulting to an empty read-only mapping.

    Mappings are compared but not hashed, so entities stay hashable.
    """
    return field(default_factory=lambda: _EMPTY, hash=False)


class IdKind(enum.Enum):
    STANDARD = 'standard'  # 11 bit
    EXTENDED = 'extended'  # 29 bit


class ValueType(enum.Enum):
    SIGNED = 'signed'
    UNSIGNED = 'unsigned'
    FLOAT = 'float'    # IEEE single
    DOUBLE = 'double'  # IEEE double


class MultiplexRole(enum.Enum):
    NONE = 'none'
    MULTIPLEXOR = 'multiplexor'
    MULTIPLEXED = 'multiplexed'
    MULTIPLEXED_MULTIPLEXOR = 'multiplexed_multiplexor'


class ObjectType(enum.Enum):
    """Kind of object a comment or attribute refers to.

    The values are the dbc keywords used to name the kind.
    """
    NETWORK = ''
    NODE = 'BU_'
    MESSAGE = 'BO_'
    SIGNAL = 'SG_'
    ENVIRONMENT = 'EV_'


class AttributeType(enum.Enum):
    INT = 'INT'
    HEX = 'HEX'
    FLOAT = 'FLOAT'
    STRING = 'STRING'
    ENUM = 'ENUM'


@dataclass(frozen=True)
class MessageId:
    """Message identifier as written in a dbc file.

    Bit 31 of the written value flags an extended (29 bit) identifier and
    is not part of the identifier sent on the bus.
    """
    value: int

    def raw(self):
        """Returns the identifier used on the bus.

        """
        return self.value & ~EXTENDED_FLAG

    def kind(self):
        if self.value & EXTENDED_FLAG:
            return IdKind.EXTENDED
        return IdKind.STANDARD

    def is_extended(self):
        return self.kind() is IdKind.EXTENDED

    @classmethod
    def from_raw(cls, raw, kind):
        """Returns MessageId of bus identifier raw of the given kind.

        """
        if kind is IdKind.EXTENDED:
            return cls(raw | EXTENDED_FLAG)
        return cls(raw)

    def __str__(self):
        if self.is_extended():
            return "0x{:08X}x".format(self.raw())
        return "0x{:03X}".format(self.raw())


@dataclass(frozen=True)
class Range:
    """A range of values from minimum to maximum, both included.

    """
    minimum: int
    maximum: int

    def __str__(self):
        return "Range({}, {})".format(self.minimum, self.maximum)

    def limits(self):
        """Returns tuple of minimum and maximum values.

        """
        return (self.minimum, self.maximum)

    def within(self, x):
        """Returns boolean that is True iff value x is in the range.

        """
        return self.minimum <= x <= self.maximum


@dataclass(frozen=True)
class BitTiming:
    baudrate: int
    btr1: int
    btr2: int


@dataclass(frozen=True)
class Node:
    name: str
    comments: tuple = ()
    attributes: MappingProxyType = mapping_field()


@dataclass(frozen=True)
class ValueTable:
    """Named mapping from raw values to labels.

    """
    name: str
    values: MappingProxyType = mapping_field()

    def label(self, value, default=None):
        return self.values.get(value, default)


@dataclass(frozen=True)
class AttributeDefinition:
    """Declaration of a user defined attribute (BA_DEF_) and its default.

    Attributes:
        name:        Attribute name.
        object_type: ObjectType the attribute applies to.
        value_type:  AttributeType of the values.
        minimum:     Lower limit of INT, HEX and FLOAT values, else None.
        maximum:     Upper limit of INT, HEX and FLOAT values, else None.
        choices:     Labels of ENUM values.
        default:     Value given by BA_DEF_DEF_, or None.
    """
    name: str
    object_type: ObjectType
    value_type: AttributeType
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: tuple = ()
    default: object = None

    def coerce(self, value):
        """Returns value converted to the type of the attribute.

        Enumeration indices are replaced by their labels.

        Raises:
            ValueError: If value does not fit the type.
        """
        typ = self.value_type
        if typ is AttributeType.STRING:
            if not isinstance(value, str):
                raise ValueError("expected string, got {}".format(value))
            return value
        if typ is AttributeType.ENUM:
            if isinstance(value, str):
                if value not in self.choices:
                    raise ValueError("\"{}\" is not one of {}".format(
                        value, list(self.choices)))
                return value
            if isinstance(value, float) and not value.is_integer():
                raise ValueError("enumeration index {} is not an integer".
                                 format(value))
            index = int(value)
            if not 0 <= index < len(self.choices):
                raise ValueError("enumeration index {} out of range".format(
                    index))
            return self.choices[index]
        if isinstance(value, str):
            raise ValueError("expected number, got \"{}\"".format(value))
        if typ is AttributeType.FLOAT:
            return float(value)
        if isinstance(value, float) and not value.is_integer():
            raise ValueError("expected integer, got {}".format(value))
        return int(value)

    def within_limits(self, value):
        """Returns boolean True unless a numeric value is outside the limits.

        A definition with equal limits accepts every value.
        """
        if self.minimum is None or self.maximum is None\
                or self.minimum == self.maximum:
            return True
        return self.minimum <= value <= self.maximum


@dataclass(frozen=True)
class Signal:
    """Class for CAN-bus signals.

    Attributes:
        name:               Signal name, unique within its message.
        start_bit:          Start bit as written; the MSB for Motorola
                            signals and the LSB for Intel signals.
        length:             Number of bits.
        byte_order:         ByteOrder of the bits.
        value_type:         ValueType of the raw value.
        factor, offset:     Physical value is raw * factor + offset.
        minimum, maximum:   Physical value range.
        unit:               Unit of the physical value.
        receivers:          Names of receiving nodes.
        is_multiplexor:     True if the signal selects multiplexed signals.
        multiplex_value:    Switch value selecting the signal, or None.
        multiplexor:        Name of the multiplexor selecting the signal.
        multiplex_ranges:   Ranges of switch values selecting the signal.
        layout:             BitLayout within the message payload.
        value_table:        Name of the value table used, or None.
        value_descriptions: Labels of raw values.
        comments:           Comment texts.
        attributes:         Attribute values by name.
        initial_value:      Raw value before the first reception.
    """
    name: str
    start_bit: int
    length: int
    byte_order: ByteOrder
    value_type: ValueType
    factor: float
    offset: float
    minimum: float
    maximum: float
    unit: str
    receivers: tuple
    layout: BitLayout
    is_multiplexor: bool = False
    multiplex_value: Optional[int] = None
    multiplexor: Optional[str] = None
    multiplex_ranges: tuple = ()
    value_table: Optional[str] = None
    value_descriptions: MappingProxyType = mapping_field()
    comments: tuple = ()
    attributes: MappingProxyType = mapping_field()
    initial_value: float = 0

    def __str__(self):
        if self.length == 1:
            string = "{}, {} bit at bit {}".format(self.name, self.length,
                                                   self.start_bit)
        else:
            string = "{}, {} bits starting at bit {}".format(
                self.name, self.length, self.start_bit)
        string += ", {}, {}".format(self.byte_order.name.lower(),
                                    self.value_type.value)
        if self.multiplexor is not None:
            ranges = " ".join("{}-{}".format(*r.limits())
                              for r in self.multiplex_ranges)
            string += ", selected by {} {}".format(self.multiplexor, ranges)
        return string

    @property
    def is_signed(self):
        return self.value_type is ValueType.SIGNED

    @property
    def is_float(self):
        return self.value_type in (ValueType.FLOAT, ValueType.DOUBLE)

    @property
    def is_little_endian(self):
        return self.byte_order is ByteOrder.LITTLE_ENDIAN

    @property
    def multiplex_role(self):
        if self.multiplex_value is None:
            if self.is_multiplexor:
                return MultiplexRole.MULTIPLEXOR
            return MultiplexRole.NONE
        if self.is_multiplexor:
            return MultiplexRole.MULTIPLEXED_MULTIPLEXOR
        return MultiplexRole.MULTIPLEXED

    @property
    def vector_start_bit(self):
        """Start bit as displayed by Vector CANdb++.

        CANdb++ shows the least significant bit of Motorola signals.
        """
        if self.byte_order is ByteOrder.BIG_ENDIAN:
            return self.layout.lsb
        return self.start_bit

    @property
    def physical_initial_value(self):
        return self.initial_value * self.factor + self.offset

    def multiplexes(self, val):
        """Return boolean True if signal is a multiplexor for value.

        """
        return self.is_multiplexor\
            and (val >= 0) and (val < 2**self.length)

    def selected_by(self, value):
        """Return boolean True if switch value selects the signal.

        Signals that are not multiplexed are always present.
        """
        if self.multiplexor is None:
            return True
        return any(r.within(value) for r in self.multiplex_ranges)


@dataclass(frozen=True)
class SignalGroup:
    name: str
    repetitions: int
    signal_names: tuple = ()


@dataclass(frozen=True)
class Message:
    """Class for can-bus messages.

    Attributes:
        frame_id:      MessageId of the message.
        name:          Name of message.
        size:          Number of bytes in message.
        transmitter:   Name of the sending node, or None.
        transmitters:  All sending nodes, including those of BO_TX_BU_.
        signals:       Signals in order of declaration.
        comments:      Comment texts.
        attributes:    Attribute values by name.
        signal_groups: SignalGroup objects by name.
        cycle_time:    Cycle time in ms, 0 if not periodic.
    """
    frame_id: MessageId
    name: str
    size: int
    transmitter: Optional[str] = None
    transmitters: tuple = ()
    signals: tuple = ()
    comments: tuple = ()
    attributes: MappingProxyType = mapping_field()
    signal_groups: MappingProxyType = mapping_field()
    cycle_time: int = 0

    def __str__(self):
        string = "{} {}, {} bytes".format(self.frame_id, self.name, self.size)
        if self.transmitters:
            string += ', transmitters: ' + ' '.join(self.transmitters)
        string += "\n"
        for c in self.comments:
            string += 4*" " + c + "\n"
        if self.signals:
            sig_string = "".join(str(s) + "\n" for s in self.signals)
            string += textwrap.indent(sig_string, 4*" ")
        return string

    def signal(self, name):
        """Return signal called name.

        Raises:
            KeyError: If the message has no such signal.
        """
        for sig in self.signals:
            if sig.name == name:
                return sig
        raise KeyError(name)

    @property
    def multiplexors(self):
        return tuple(s for s in self.signals if s.is_multiplexor)

    @property
    def is_multiplexed(self):
        return any(s.is_multiplexor for s in self.signals)

    def signals_for(self, multiplexor, value):
        """Return signals present when multiplexor has switch value.

        Signals selected by other multiplexors are not included.

        Args:
            multiplexor(str): Name of the multiplexor signal.
            value(int):       Switch value.
        """
        return tuple(s for s in self.signals
                     if s.multiplexor is None
                     or (s.multiplexor == multiplexor and s.selected_by(value)))


@dataclass(frozen=True)
class Model:
    """All information contained in a dbc file.

    """
    version: str = ''
    new_symbols: tuple = ()
    bit_timing: Optional[BitTiming] = None
    nodes: MappingProxyType = mapping_field()
    value_tables: MappingProxyType = mapping_field()
    messages: tuple = ()
    comments: tuple = ()
    attributes: MappingProxyType = mapping_field()
    attribute_definitions: tuple = ()
    _by_id: dict = field(default=None, init=False, repr=False,
                         compare=False)

    def __post_init__(self):
        by_id = {}
        for msg in self.messages:
            by_id.setdefault(msg.frame_id.value, msg)
        object.__setattr__(self, '_by_id', by_id)

    def __str__(self):
        string = "VERSION " + self.version + "\n"
        if self.nodes:
            string += "nodes: " + " ".join(self.nodes) + "\n"
        if self.messages:
            string += "messages:\n"
            msglist = "".join(str(m) for m in self.messages)
            string += textwrap.indent(msglist, 4*" ")
        return string

    def message_by_id(self, frame_id):
        """Return message with identifier frame_id.

        Args:
            frame_id: MessageId, or the 32 bit value as written in dbc text.

        Raises:
            KeyError: If there is no such message.
        """
        if isinstance(frame_id, MessageId):
            frame_id = frame_id.value
        return self._by_id[frame_id]

    def message_by_name(self, name):
        for msg in self.messages:
            if msg.name == name:
                return msg
        raise KeyError(name)

    def attribute_definition(self, name, object_type):
        """Return definition of attribute name for object_type, or None.

        """
        for d in self.attribute_definitions:
            if d.name == name and d.object_type is object_type:
                return d
        return None
