"""Tests of the statement grammars."""
import pytest

from dbcmodel.bitlayout import ByteOrder
from dbcmodel.errors import DbcSyntaxError
from dbcmodel.grammar import GRAMMARS, classify, parse_statement
from dbcmodel.lexer import Statement
from dbcmodel.model import AttributeType, ObjectType
from dbcmodel.records import (NETWORK, AttributeDefinitionRecord,
                              AttributeValueRecord, BitTimingRecord,
                              CommentRecord, MessageRecord,
                              MultiplexRangeRecord, SignalGroupRecord,
                              Target, TransmittersRecord)


def parse_text(text, line=1):
    return parse_statement(Statement(line, 0, text))


def test_message():
    record = parse_text('BO_ 256 ENGINE_DATA: 8 ECU1', 4)
    assert record == MessageRecord(4, 256, 'ENGINE_DATA', 8, 'ECU1')


def test_message_without_transmitter():
    record = parse_text('BO_ 2147483748 EXT : 8')
    assert record.frame_id == 2147483748
    assert record.transmitter is None


def test_signal():
    """Test all fields of a plain signal."""
    r = parse_text('SG_ RPM : 0|16@1+ (0.25,0) [0|16000] "rpm" ECU2')
    assert r.name == 'RPM'
    assert r.multiplex_value is None
    assert not r.is_multiplexor
    assert (r.start_bit, r.length) == (0, 16)
    assert r.byte_order is ByteOrder.LITTLE_ENDIAN
    assert not r.is_signed
    assert (r.factor, r.offset) == (0.25, 0.0)
    assert (r.minimum, r.maximum) == (0.0, 16000.0)
    assert r.unit == 'rpm'
    assert r.receivers == ('ECU2',)


def test_multiplexed_signals():
    mux = parse_text('SG_ Mode M : 0|4@1+ (1,0) [0|15] "" A')
    assert mux.is_multiplexor and mux.multiplex_value is None
    val = parse_text('SG_ Val m3 : 7|8@0- (1,0) [0|0] "" A, B')
    assert not val.is_multiplexor and val.multiplex_value == 3
    assert val.byte_order is ByteOrder.BIG_ENDIAN
    assert val.is_signed
    assert val.receivers == ('A', 'B')
    sub = parse_text('SG_ Sub m1M : 8|8@1+ (1,0) [0|0] "" Vector__XXX')
    assert sub.is_multiplexor and sub.multiplex_value == 1
    assert sub.receivers == ('Vector__XXX',)


def test_comments():
    """Test the targets of comments."""
    assert parse_text('CM_ SG_ 100 RPM "Engine speed";') == CommentRecord(
        1, Target(ObjectType.SIGNAL, 100, 'RPM'), 'Engine speed')
    assert parse_text('CM_ BU_ Engine "ecu";').target == \
        Target(ObjectType.NODE, name='Engine')
    assert parse_text('CM_ BO_ 7 "msg";').target == \
        Target(ObjectType.MESSAGE, frame_id=7)
    assert parse_text('CM_ "network";').target is NETWORK
    assert parse_text('CM_ EV_ Env "env";').target.object_type is \
        ObjectType.ENVIRONMENT


def test_multiline_comment_text():
    record = parse_text('CM_ BO_ 1 "first\nsecond \\"quoted\\"";')
    assert record.text == 'first\nsecond "quoted"'


def test_attribute_definitions():
    assert parse_text('BA_DEF_ BO_ "GenMsgCycleTime" INT 0 65535;') == \
        AttributeDefinitionRecord(1, ObjectType.MESSAGE, 'GenMsgCycleTime',
                                  AttributeType.INT, 0, 65535)
    enum = parse_text('BA_DEF_ SG_ "Kind" ENUM "A","B", "C";')
    assert enum.value_type is AttributeType.ENUM
    assert enum.choices == ('A', 'B', 'C')
    string = parse_text('BA_DEF_ "BusType" STRING ;')
    assert string.object_type is ObjectType.NETWORK
    assert string.value_type is AttributeType.STRING
    flt = parse_text('BA_DEF_ BU_ "Gain" FLOAT -1.5 1e3;')
    assert (flt.minimum, flt.maximum) == (-1.5, 1000.0)


def test_attribute_values():
    assert parse_text('BA_ "GenMsgCycleTime" BO_ 100 10;') == \
        AttributeValueRecord(1, 'GenMsgCycleTime',
                             Target(ObjectType.MESSAGE, frame_id=100), 10)
    network = parse_text('BA_ "Ratio" 1.5;')
    assert network.target is NETWORK
    assert network.value == 1.5
    assert parse_text('BA_DEF_DEF_ "BusType" "CAN";').value == 'CAN'
    assert parse_text('BA_ "Start" SG_ 1 Temp -40;').value == -40


def test_value_descriptions():
    entries = parse_text('VAL_ 100 Gear 0 "P" 1 "R" ;')
    assert entries.frame_id == 100
    assert entries.entries == ((0, 'P'), (1, 'R'))
    assert entries.table_name is None
    table = parse_text('VAL_ 100 Gear Gears;')
    assert table.table_name == 'Gears'
    assert table.entries == ()
    env = parse_text('VAL_ EnvVar 0 "off" ;')
    assert env.frame_id is None
    assert env.name == 'EnvVar'


def test_value_table():
    record = parse_text('VAL_TABLE_ Gears 3 "D" 2 "N" -1 "Error" ;')
    assert record.entries == ((3, 'D'), (2, 'N'), (-1, 'Error'))


def test_new_symbols_and_bit_timing():
    record = parse_text('NS_ :\n\tNS_DESC_\n\tCM_')
    assert record.symbols == ('NS_DESC_', 'CM_')
    assert parse_text('BS_:') == BitTimingRecord(1)
    assert parse_text('BS_: 500 : 12,34') == BitTimingRecord(1, 500, 12, 34)


def test_nodes_and_transmitters():
    assert parse_text('BU_: ECU1 ECU2').names == ('ECU1', 'ECU2')
    assert parse_text('BU_:').names == ()
    assert parse_text('BO_TX_BU_ 100 : A,B;') == \
        TransmittersRecord(1, 100, ('A', 'B'))


def test_signal_groups_and_value_types():
    assert parse_text('SIG_GROUP_ 100 Grp 1 : RPM Temp;') == \
        SignalGroupRecord(1, 100, 'Grp', 1, ('RPM', 'Temp'))
    assert parse_text('SIG_VALTYPE_ 100 Temp : 1;').value_type == 1
    assert parse_text('SIG_VALTYPE_ 100 Temp 2;').value_type == 2


def test_multiplex_ranges():
    assert parse_text('SG_MUL_VAL_ 100 Sub Mode 1-1, 3-5;') == \
        MultiplexRangeRecord(1, 100, 'Sub', 'Mode', ((1, 1), (3, 5)))
    with pytest.raises(DbcSyntaxError):
        parse_text('SG_MUL_VAL_ 100 Sub Mode 5-3;')


def test_syntax_error_position():
    """Test that errors carry line and column of the offending token."""
    with pytest.raises(DbcSyntaxError) as excinfo:
        parse_text('BO_ 100 : 8', 3)
    err = excinfo.value
    assert (err.line, err.col) == (3, 8)
    assert err.expected == 'identifier'
    assert err.found == ': 8'


def test_syntax_error_after_line_break():
    with pytest.raises(DbcSyntaxError) as excinfo:
        parse_text('CM_ BO_ 1 "a\nb" x;', 5)
    assert excinfo.value.line == 6


@pytest.mark.parametrize("text", [
    'BO_ 100 SG_: 8',                  # reserved word as name
    'BO_ 4294967296 M: 8',             # id beyond 32 bits
    'VERSION "1" extra',               # trailing text
    'SG_ S : 0|8@2+ (1,0) [0|0] "" A',  # byte order
    'BA_DEF_ BO_ "X" BOOL;',
])
def test_syntax_errors(text):
    with pytest.raises(DbcSyntaxError):
        parse_text(text)


def test_unsupported_keywords():
    """Test that statements without grammar are not parsed."""
    assert parse_text('BU_SG_REL_ BU_ A SG_ 1 S;') is None
    assert parse_text('EV_ Env: 0 [0|1] "" 0 1 DUMMY_NODE_VECTOR0 A;') is None
    assert classify(Statement(1, 0, 'FOO bar')) is None
    assert classify(Statement(1, 0, 'BO_ 1 M: 8')) is GRAMMARS['BO_']
