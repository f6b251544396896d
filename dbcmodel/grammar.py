"""Grammars of the dbc statements.

Each supported keyword maps to one grammar method of StatementParser in
the GRAMMARS table. A grammar parses the text following the keyword and
returns one record of dbcmodel.records; grammars know nothing about each
other or about previously parsed statements. Statements with keywords not
in the table are not parsed at all, see parse_statement.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
import re

from .bitlayout import ByteOrder
from .errors import DbcSyntaxError
from .model import MAX_ENCODED_ID, AttributeType, ObjectType
from .records import (NETWORK, AttributeDefaultRecord,
                      AttributeDefinitionRecord, AttributeValueRecord,
                      BitTimingRecord, CommentRecord, MessageRecord,
                      MultiplexRangeRecord, NewSymbolsRecord, NodesRecord,
                      SignalGroupRecord, SignalRecord, SignalValueTypeRecord,
                      Target, TransmittersRecord, ValueDescriptionRecord,
                      ValueTableRecord, VersionRecord)

KEYWORDS = ('VERSION', 'NS_', 'NS_DESC_', 'CM_', 'BA_DEF_',
            'BA_', 'VAL_', 'CAT_DEF_', 'CAT_', 'FILTER', 'BA_DEF_DEF_',
            'EV_DATA_', 'ENVVAR_DATA_', 'SGTYPE_', 'SGTYPE_VAL_',
            'BA_DEF_SGTYPE_', 'BA_SGTYPE_', 'SIG_TYPE_REF_', 'VAL_TABLE_',
            'SIG_GROUP_', 'SIG_VALTYPE_', 'SIGTYPE_VALTYPE_', 'BO_TX_BU_',
            'BA_DEF_REL_', 'BA_REL_', 'BA_DEF_DEF_REL_', 'BU_SG_REL_',
            'BU_EV_REL_', 'BU_BO_REL_', 'SG_MUL_VAL_', 'BS_', 'BU_',
            'BO_', 'SG_', 'EV_', 'VECTOR__INDEPENDENT_SIG_MSG',
            'Vector__XXX')

# message names may be the pseudo message holding unassigned signals
KEYWORDS_BO = tuple(k for k in KEYWORDS if k != 'VECTOR__INDEPENDENT_SIG_MSG')
# node references may be the placeholder for no node
KEYWORDS_MOST = tuple(k for k in KEYWORDS if k != 'Vector__XXX')

_WHITESPACE = re.compile(r'[ \f\v\r\t\n]*')
_IDENTIFIER = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
_UINT = re.compile(r'[0-9]+')
_SINT = re.compile(r'[-+]?[0-9]+')
_NUMBER = re.compile(r'[-+]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?')
_NODE_SEPARATOR = re.compile(r'[ \t]*,?[ \t]*')
_RANGE_SEPARATOR = re.compile(r'[ \t]*,[ \t]*')
_STRING_SEPARATOR = re.compile(r'[ \t]*,[ \t]*')


class StatementParser:
    """Recursive descent parser of one dbc statement.

    The position is tracked as character index, line and column so that
    errors point into the dbc text.
    """
    def __init__(self, statement):
        """Initializes StatementParser object.

        Args:
            statement(Statement): Statement to parse.
        """
        self.statement = statement
        self.text = statement.text
        self.len = len(self.text)
        self.n = 0
        self.line = statement.line
        self.col = statement.column

    def getpos(self):
        """Return current position within statement.

        The position is a tuple of character, line and column number.
        """
        return (self.n, self.line, self.col)

    def setpos(self, pos):
        """Set current position within statement.

        Args: pos(tuple): Character, line and column number.
        """
        self.n, self.line, self.col = pos

    def at_end(self):
        return self.n >= self.len

    def lookahead(self):
        return self.text[self.n:self.n + 10]

    def error(self, expected, msg=None):
        """Return DbcSyntaxError for the current position.

        """
        found = self.lookahead()
        if msg is None:
            if found:
                msg = "Expected {}, found \"{}\" at".format(expected, found)
            else:
                msg = "Expected {}, reached end of statement at".format(
                    expected)
        return DbcSyntaxError(msg, self.line, self.col, expected, found)

    def advance(self, k):
        chunk = self.text[self.n:self.n + k]
        nln = chunk.count('\n')
        if nln:
            self.line += nln
            self.col = k - 1 - chunk.rfind('\n')
        else:
            self.col += k
        self.n += k

    def assert_at_end(self):
        self.eat_whitespace()
        if not self.at_end() and self.text[self.n] == ';':
            self.advance(1)
            self.eat_whitespace()
        if not self.at_end():
            raise self.error("end of statement",
                             "Unrecognizable text remains from")

    def eat_whitespace(self):
        self.eat_pattern(_WHITESPACE)

    def eat_pattern(self, pattern):
        match = pattern.match(self.text, self.n)
        if match:
            self.advance(match.end() - self.n)

    def token(self, pattern, expected):
        match = pattern.match(self.text, self.n)
        if match is None:
            raise self.error(expected)
        self.advance(match.end() - self.n)
        return match.group()

    def charmatch(self, c):
        if self.at_end() or self.text[self.n] != c:
            raise self.error("\"{}\"".format(c))
        self.advance(1)

    def word(self, s):
        match = _IDENTIFIER.match(self.text, self.n)
        if match is None or match.group() != s:
            raise self.error("\"{}\"".format(s))
        self.advance(len(s))
        return s

    def uint(self):
        return int(self.token(_UINT, "unsigned int"))

    def sint(self):
        return int(self.token(_SINT, "a signed integer"))

    def double(self):
        return float(self.token(_NUMBER, "a floating point"))

    def number(self):
        """Parse integer or floating point, keeping integers int.

        """
        s = self.token(_NUMBER, "a number")
        if any(c in s for c in '.eE'):
            return float(s)
        return int(s)

    def string(self):
        if self.at_end() or self.text[self.n] != '"':
            raise self.error("a quoted string")
        chars = []
        i = self.n + 1
        while i < self.len:
            c = self.text[i]
            if c == '\\' and i + 1 < self.len and self.text[i+1] in '"\\':
                chars.append(self.text[i+1])
                i += 2
                continue
            if c == '"':
                self.advance(i + 1 - self.n)
                return ''.join(chars)
            chars.append(c)
            i += 1
        raise self.error("end of string", "Reached end while parsing string at")

    def identifier(self, reserved=()):
        match = _IDENTIFIER.match(self.text, self.n)
        if match is None:
            raise self.error("identifier")
        s = match.group()
        if s in reserved:
            raise self.error("identifier", "Identifier equals reserved word "
                             "\"{}\" at".format(s))
        self.advance(len(s))
        return s

    def identifier_ws(self, reserved=()):
        res = self.identifier(reserved)
        self.eat_whitespace()
        return res

    def identifier_list(self, reserved, separator=_NODE_SEPARATOR):
        idl = []
        res = self.optional(lambda: self.identifier(reserved))
        if res is None:
            return idl
        idl.append(res)
        while not self.at_end():
            pos = self.getpos()
            self.eat_pattern(separator)
            res = self.optional(lambda: self.identifier(reserved))
            if res is None:
                self.setpos(pos)
                break
            idl.append(res)
        return idl

    def string_list(self):
        strs = []
        res = self.optional(self.string)
        if res is None:
            return strs
        strs.append(res)
        while not self.at_end():
            pos = self.getpos()
            self.eat_pattern(_STRING_SEPARATOR)
            res = self.optional(self.string)
            if res is None:
                self.setpos(pos)
                break
            strs.append(res)
        return strs

    def optional(self, rule):
        pos = self.getpos()
        try:
            return rule()
        except DbcSyntaxError:
            self.setpos(pos)
            return None

    def any_number_of(self, rule):
        res = []
        while not self.at_end():
            pos = self.getpos()
            try:
                res0 = rule()
            except DbcSyntaxError:
                self.setpos(pos)
                break
            res.append(res0)
        return res

    def one_of(self, *rules):
        """Return result of the first rule that matches.

        If none matches, the error of the rule that got furthest is raised.
        """
        ln = 0
        cn = 0
        ex = None
        for rule in rules:
            pos = self.getpos()
            try:
                return rule()
            except DbcSyntaxError as pe:
                self.setpos(pos)
                if (ln0 := pe.line) > ln or (ln0 == ln and cn < pe.col)\
                        or ex is None:
                    ln = pe.line
                    cn = pe.col
                    ex = pe
        raise ex from None

    def frame_id(self):
        pos = self.getpos()
        value = self.uint()
        if value > MAX_ENCODED_ID:
            self.setpos(pos)
            raise self.error("message id",
                             "Message id {} does not fit 32 bits at".format(
                                 value))
        return value

    # *** statement grammars, the keyword is already consumed

    def version(self):
        self.eat_whitespace()
        return VersionRecord(self.statement.line, self.string())

    def new_symbols(self):
        self.eat_whitespace()
        self.charmatch(':')
        self.eat_whitespace()
        symbols = self.any_number_of(self.identifier_ws)
        return NewSymbolsRecord(self.statement.line, tuple(symbols))

    def baudrate(self):
        baudrate = self.uint()
        self.eat_whitespace()
        self.charmatch(':')
        self.eat_whitespace()
        btr1 = self.uint()
        self.eat_whitespace()
        self.charmatch(',')
        self.eat_whitespace()
        btr2 = self.uint()
        return (baudrate, btr1, btr2)

    def bit_timing(self):
        self.eat_whitespace()
        self.charmatch(':')
        self.eat_whitespace()
        res = self.optional(self.baudrate)
        if res is None:
            return BitTimingRecord(self.statement.line)
        return BitTimingRecord(self.statement.line, *res)

    def nodes(self):
        self.eat_whitespace()
        self.charmatch(':')
        self.eat_whitespace()
        names = self.any_number_of(lambda: self.identifier_ws(KEYWORDS_MOST))
        return NodesRecord(self.statement.line, tuple(names))

    def value_entry(self):
        self.eat_whitespace()
        value = self.sint()
        self.eat_whitespace()
        text = self.string()
        return (value, text)

    def value_table(self):
        self.eat_whitespace()
        name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        table = self.any_number_of(self.value_entry)
        self.eat_whitespace()
        self.charmatch(';')
        return ValueTableRecord(self.statement.line, name, tuple(table))

    def message(self):
        self.eat_whitespace()
        message_id = self.frame_id()
        self.eat_whitespace()
        message_name = self.identifier(KEYWORDS_BO)
        self.eat_whitespace()
        self.charmatch(':')
        self.eat_whitespace()
        size = self.uint()
        self.eat_whitespace()
        transmitter = self.optional(lambda: self.identifier(KEYWORDS_MOST))
        return MessageRecord(self.statement.line, message_id, message_name,
                             size, transmitter)

    def multiplex_value(self):
        self.charmatch('m')
        self.eat_whitespace()
        return self.uint()

    def multiplex_spec(self):
        mval = self.optional(self.multiplex_value)
        self.eat_whitespace()
        try:
            self.charmatch('M')
            multiplexor = True
        except DbcSyntaxError:
            multiplexor = False
        return (mval, multiplexor)

    def byte_order(self):
        if not self.at_end() and (c := self.text[self.n]) in '01':
            self.advance(1)
            return ByteOrder(int(c))
        raise self.error("\"0\" or \"1\"")

    def signed(self):
        if not self.at_end() and (c := self.text[self.n]) in '+-':
            self.advance(1)
            return c == '-'
        raise self.error("\"+\" or \"-\"")

    def signal(self):
        self.eat_whitespace()
        name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        mval, multiplexor = self.multiplex_spec()
        self.eat_whitespace()
        self.charmatch(':')
        self.eat_whitespace()
        start = self.uint()
        self.eat_whitespace()
        self.charmatch('|')
        self.eat_whitespace()
        size = self.uint()
        self.eat_whitespace()
        self.charmatch('@')
        self.eat_whitespace()
        order = self.byte_order()
        self.eat_whitespace()
        signed_value = self.signed()
        self.eat_whitespace()
        self.charmatch('(')
        self.eat_whitespace()
        factor = self.double()
        self.eat_whitespace()
        self.charmatch(',')
        self.eat_whitespace()
        offset = self.double()
        self.eat_whitespace()
        self.charmatch(')')
        self.eat_whitespace()
        self.charmatch('[')
        self.eat_whitespace()
        minimum = self.double()
        self.eat_whitespace()
        self.charmatch('|')
        self.eat_whitespace()
        maximum = self.double()
        self.eat_whitespace()
        self.charmatch(']')
        self.eat_whitespace()
        unit = self.string()
        self.eat_whitespace()
        receivers = self.identifier_list(KEYWORDS_MOST)
        return SignalRecord(self.statement.line, name, mval, multiplexor,
                            start, size, order, signed_value, factor, offset,
                            minimum, maximum, unit, tuple(receivers))

    def transmitters(self):
        self.eat_whitespace()
        message_id = self.frame_id()
        self.eat_whitespace()
        self.charmatch(':')
        self.eat_whitespace()
        transmitters = self.identifier_list(KEYWORDS_MOST)
        self.eat_whitespace()
        self.charmatch(';')
        return TransmittersRecord(self.statement.line, message_id,
                                  tuple(transmitters))

    def target_BU_(self):
        self.word('BU_')
        self.eat_whitespace()
        return Target(ObjectType.NODE, name=self.identifier(KEYWORDS))

    def target_BO_(self):
        self.word('BO_')
        self.eat_whitespace()
        return Target(ObjectType.MESSAGE, frame_id=self.frame_id())

    def target_SG_(self):
        self.word('SG_')
        self.eat_whitespace()
        message_id = self.frame_id()
        self.eat_whitespace()
        name = self.identifier(KEYWORDS)
        return Target(ObjectType.SIGNAL, message_id, name)

    def target_EV_(self):
        self.word('EV_')
        self.eat_whitespace()
        return Target(ObjectType.ENVIRONMENT, name=self.identifier(KEYWORDS))

    def target(self):
        return self.one_of(self.target_SG_, self.target_BU_, self.target_BO_,
                           self.target_EV_, lambda: NETWORK)

    def comment(self):
        self.eat_whitespace()
        target = self.target()
        self.eat_whitespace()
        text = self.string()
        self.eat_whitespace()
        self.charmatch(';')
        return CommentRecord(self.statement.line, target, text)

    def limits(self):
        self.eat_whitespace()
        val1 = self.number()
        self.eat_whitespace()
        val2 = self.number()
        return (val1, val2)

    def ba_int(self):
        self.word('INT')
        return (AttributeType.INT,) + self.limits() + ((),)

    def ba_hex(self):
        self.word('HEX')
        return (AttributeType.HEX,) + self.limits() + ((),)

    def ba_float(self):
        self.word('FLOAT')
        return (AttributeType.FLOAT,) + self.limits() + ((),)

    def ba_string(self):
        self.word('STRING')
        return (AttributeType.STRING, None, None, ())

    def ba_enum(self):
        self.word('ENUM')
        self.eat_whitespace()
        return (AttributeType.ENUM, None, None, tuple(self.string_list()))

    def attribute_definition(self):
        self.eat_whitespace()
        spec = self.one_of(lambda: self.word('BU_'),
                           lambda: self.word('BO_'),
                           lambda: self.word('SG_'),
                           lambda: self.word('EV_'),
                           lambda: '')
        self.eat_whitespace()
        name = self.string()
        self.eat_whitespace()
        typ, minimum, maximum, choices = self.one_of(
            self.ba_float, self.ba_int, self.ba_hex, self.ba_string,
            self.ba_enum)
        self.eat_whitespace()
        self.charmatch(';')
        return AttributeDefinitionRecord(self.statement.line,
                                         ObjectType(spec), name, typ,
                                         minimum, maximum, choices)

    def attribute_default(self):
        self.eat_whitespace()
        name = self.string()
        self.eat_whitespace()
        val = self.one_of(self.number, self.string)
        self.eat_whitespace()
        self.charmatch(';')
        return AttributeDefaultRecord(self.statement.line, name, val)

    def attribute_value(self):
        self.eat_whitespace()
        name = self.string()
        self.eat_whitespace()
        target = self.target()
        self.eat_whitespace()
        val = self.one_of(self.number, self.string)
        self.eat_whitespace()
        self.charmatch(';')
        return AttributeValueRecord(self.statement.line, name, target, val)

    def value_entries(self):
        vals = self.any_number_of(self.value_entry)
        self.eat_whitespace()
        self.charmatch(';')
        return tuple(vals)

    def table_reference(self):
        name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        self.charmatch(';')
        return name

    def signal_values(self):
        message_id = self.frame_id()
        self.eat_whitespace()
        sig_name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        table = self.optional(self.table_reference)
        if table is not None:
            return ValueDescriptionRecord(self.statement.line, message_id,
                                          sig_name, table_name=table)
        return ValueDescriptionRecord(self.statement.line, message_id,
                                      sig_name, self.value_entries())

    def environment_values(self):
        name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        return ValueDescriptionRecord(self.statement.line, None, name,
                                      self.value_entries())

    def value_descriptions(self):
        self.eat_whitespace()
        return self.one_of(self.signal_values, self.environment_values)

    def signal_group(self):
        self.eat_whitespace()
        msg_id = self.frame_id()
        self.eat_whitespace()
        name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        number = self.uint()
        self.eat_whitespace()
        self.charmatch(':')
        self.eat_whitespace()
        sigs = self.identifier_list(KEYWORDS)
        self.eat_whitespace()
        self.charmatch(';')
        return SignalGroupRecord(self.statement.line, msg_id, name, number,
                                 tuple(sigs))

    def sig_val_type_spec(self):
        if not self.at_end() and (c := self.text[self.n]) in '0123':
            self.advance(1)
            return int(c)
        raise self.error("one of \"0123\"")

    def signal_value_type(self):
        self.eat_whitespace()
        message_id = self.frame_id()
        self.eat_whitespace()
        signal_name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        self.optional(lambda: self.charmatch(':'))
        self.eat_whitespace()
        tn = self.sig_val_type_spec()
        self.eat_whitespace()
        self.charmatch(';')
        return SignalValueTypeRecord(self.statement.line, message_id,
                                     signal_name, tn)

    def uint_range(self):
        pos = self.getpos()
        low = self.uint()
        self.eat_whitespace()
        self.charmatch('-')
        self.eat_whitespace()
        high = self.uint()
        if low > high:
            self.setpos(pos)
            raise self.error("range", "Empty range {}-{} at".format(low, high))
        return (low, high)

    def sep_uint_range(self):
        self.eat_pattern(_RANGE_SEPARATOR)
        return self.uint_range()

    def multiplex_ranges(self):
        self.eat_whitespace()
        message_id = self.frame_id()
        self.eat_whitespace()
        signal_name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        multiplexor_name = self.identifier(KEYWORDS)
        self.eat_whitespace()
        ranges = [self.uint_range()]
        ranges += self.any_number_of(self.sep_uint_range)
        self.eat_whitespace()
        self.charmatch(';')
        return MultiplexRangeRecord(self.statement.line, message_id,
                                    signal_name, multiplexor_name,
                                    tuple(ranges))


GRAMMARS = {
    'VERSION': StatementParser.version,
    'NS_': StatementParser.new_symbols,
    'BS_': StatementParser.bit_timing,
    'BU_': StatementParser.nodes,
    'VAL_TABLE_': StatementParser.value_table,
    'BO_': StatementParser.message,
    'SG_': StatementParser.signal,
    'BO_TX_BU_': StatementParser.transmitters,
    'CM_': StatementParser.comment,
    'BA_DEF_': StatementParser.attribute_definition,
    'BA_DEF_DEF_': StatementParser.attribute_default,
    'BA_': StatementParser.attribute_value,
    'VAL_': StatementParser.value_descriptions,
    'SIG_GROUP_': StatementParser.signal_group,
    'SIG_VALTYPE_': StatementParser.signal_value_type,
    'SG_MUL_VAL_': StatementParser.multiplex_ranges,
}


def classify(statement):
    """Return grammar of statement, or None if its keyword is not supported.

    """
    return GRAMMARS.get(statement.keyword)


def parse_statement(statement):
    """Parse statement into a record.

    Returns:
        Record object, or None for statements with unsupported keywords.

    Raises:
        DbcSyntaxError: If the statement does not match its grammar.
    """
    grammar = classify(statement)
    if grammar is None:
        return None
    parser = StatementParser(statement)
    parser.word(statement.keyword)
    record = grammar(parser)
    parser.assert_at_end()
    return record
