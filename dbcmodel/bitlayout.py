"""Resolution of signal start bits into absolute bit positions.

Positions are numbered LSB first within increasing bytes: bit 0 is the
least significant bit of byte 0, bit 8 the least significant bit of byte 1
and so on. Intel (little-endian) signals occupy consecutive positions
upwards from their start bit. Motorola (big-endian) signals start at their
most significant bit; towards the least significant bit the numbering
decreases within a byte and continues at bit 7 of the next byte:

    byte 0:  7  6  5  4  3  2  1  0
    byte 1: 15 14 13 12 11 10  9  8

A Motorola signal with start bit 7 and length 12 therefore occupies bits
7..0 of byte 0 and bits 15..12 of byte 1.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
import enum
from dataclasses import dataclass

from .errors import BitRangeOverflowError

MAX_SIGNAL_LENGTH = 64


class ByteOrder(enum.Enum):
    """Bit numbering convention of a signal, the @0/@1 of a SG_ statement.

    """
    BIG_ENDIAN = 0
    LITTLE_ENDIAN = 1
    MOTOROLA = 0
    INTEL = 1


@dataclass(frozen=True)
class BitLayout:
    """Bits of a message payload occupied by a signal.

    Attributes:
        positions: Absolute bit positions, least significant bit of the
                   signal first.
    """
    positions: tuple

    def __len__(self):
        return len(self.positions)

    @property
    def lsb(self):
        return self.positions[0]

    @property
    def msb(self):
        return self.positions[-1]

    @property
    def first_byte(self):
        return min(self.positions) // 8

    @property
    def last_byte(self):
        return max(self.positions) // 8

    def byte_indices(self):
        """Return sorted tuple of the payload bytes touched by the signal.

        """
        return tuple(sorted({p // 8 for p in self.positions}))


def bit_positions(start_bit, length, byte_order):
    """Return absolute bit positions of a signal, LSB first.

    Args:
        start_bit(int):        Start bit as written in the SG_ statement.
        length(int):           Number of bits.
        byte_order(ByteOrder): Bit numbering convention.
    """
    if byte_order is ByteOrder.LITTLE_ENDIAN:
        return tuple(range(start_bit, start_bit + length))
    positions = []
    pos = start_bit
    for _ in range(length):
        positions.append(pos)
        if pos % 8 == 0:
            pos += 15
        else:
            pos -= 1
    positions.reverse()
    return tuple(positions)


def resolve(start_bit, length, byte_order, size, name=None, line=None):
    """Return BitLayout of a signal within a message of size bytes.

    Args:
        start_bit(int):        Start bit as written in the SG_ statement.
        length(int):           Number of bits.
        byte_order(ByteOrder): Bit numbering convention.
        size(int):             Number of bytes in the message.
        name(str):             Signal name used in error messages.
        line(int):             Line number used in error messages.

    Raises:
        BitRangeOverflowError: Invalid length, or bits beyond the message.
    """
    what = "signal" if name is None else "signal \"{}\"".format(name)
    if length < 1 or length > MAX_SIGNAL_LENGTH:
        raise BitRangeOverflowError("{} has length {}, must be 1 to {}".format(
            what, length, MAX_SIGNAL_LENGTH), line)
    positions = bit_positions(start_bit, length, byte_order)
    highest = max(positions)
    if highest >= size * 8:
        raise BitRangeOverflowError(
            "{} with start bit {} and length {} needs bit {}, message has "
            "{} byte(s)".format(what, start_bit, length, highest, size), line)
    return BitLayout(positions)
