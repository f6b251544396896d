"""Assembly of statement records into a Model.

Records are added in file order. Nodes, value tables, attribute
definitions, messages and signals are entered as they come, each signal
belonging to the message statement before it. Records that refer to other
entities (BO_TX_BU_, CM_, BA_DEF_DEF_, BA_, VAL_, SIG_GROUP_, SIG_VALTYPE_
and SG_MUL_VAL_) are kept until every entity is known, and are applied in
file order by resolve(). Multiplexing is resolved last. build() freezes
the result into a Model.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
import dataclasses
import logging

from . import bitlayout
from .errors import (BitRangeOverflowError, DuplicateIdentifierError,
                     MultipleMultiplexorsError, MultiplexorMissingError,
                     MultiplexValueError, SemanticError)
from .model import (MAX_EXTENDED_ID, MAX_STANDARD_ID, NO_NODE,
                    AttributeDefinition, BitTiming, Message, MessageId, Model,
                    Node, ObjectType, Range, Signal, SignalGroup, ValueTable,
                    ValueType, frozen_mapping)
from .records import (AttributeDefaultRecord, AttributeDefinitionRecord,
                      AttributeValueRecord, BitTimingRecord, CommentRecord,
                      MessageRecord, MultiplexRangeRecord, NewSymbolsRecord,
                      NodesRecord, SignalGroupRecord, SignalRecord,
                      SignalValueTypeRecord, TransmittersRecord,
                      ValueDescriptionRecord, ValueTableRecord, VersionRecord)

log = logging.getLogger(__name__)

# pseudo message of signals not sent in any message
INDEPENDENT_SIGNALS = 'VECTOR__INDEPENDENT_SIG_MSG'

CYCLE_TIME_ATTRIBUTE = 'GenMsgCycleTime'
START_VALUE_ATTRIBUTE = 'GenSigStartValue'

# SIG_VALTYPE_ codes of IEEE values and the signal length they need
FLOAT_TYPES = {1: (ValueType.FLOAT, 32), 2: (ValueType.DOUBLE, 64)}


class Assembler:
    """Builds a Model from the records of one dbc text.

    """
    def __init__(self, diagnostics):
        """Initializes Assembler object.

        Args:
            diagnostics(Diagnostics): Receives errors and warnings.
        """
        self.diag = diagnostics
        self.version = ''
        self.version_line = None
        self.new_symbols = []
        self.bit_timing = None
        self.network = {'comments': [], 'attributes': {}}
        self.nodes = {}
        self.value_tables = {}
        self.attribute_definitions = {}  # (object type, name) -> definition
        self.messages = []  # drafts in file order, duplicates included
        self.deferred = []
        self._by_id = {}
        self._ignored_ids = set()
        self._current = None
        self._skip_signals = False
        self._entities = {
            VersionRecord: self._version,
            NewSymbolsRecord: self._new_symbols,
            BitTimingRecord: self._bit_timing,
            NodesRecord: self._nodes,
            ValueTableRecord: self._value_table,
            AttributeDefinitionRecord: self._attribute_definition,
            MessageRecord: self._message,
            SignalRecord: self._signal,
        }
        self._references = {
            TransmittersRecord: self._transmitters,
            CommentRecord: self._comment,
            AttributeDefaultRecord: self._attribute_default,
            AttributeValueRecord: self._attribute_value,
            ValueDescriptionRecord: self._value_descriptions,
            SignalGroupRecord: self._signal_group,
            SignalValueTypeRecord: self._signal_value_type,
            MultiplexRangeRecord: self._multiplex_range,
        }

    def add(self, record):
        """Add record of the next statement.

        """
        log.debug("%r", record)
        handler = self._entities.get(type(record))
        if handler is not None:
            handler(record)
        else:
            assert type(record) in self._references, record
            self.deferred.append(record)

    def discard(self, statement):
        """Note that statement could not be parsed.

        Signals following a message statement that could not be parsed are
        dropped with it.
        """
        if statement.keyword == 'BO_':
            self._current = None
            self._skip_signals = True

    def resolve(self):
        """Apply deferred records and resolve multiplexing.

        """
        for msg in self.messages:
            self._by_id.setdefault(msg['id'].value, msg)
        for record in self.deferred:
            self._references[type(record)](record)
        for msg in self.messages:
            self._resolve_multiplexing(msg)

    # *** entities

    def _version(self, r):
        if self.version_line is not None:
            self.diag.error(DuplicateIdentifierError(
                "more than one VERSION statement, first at line {}".format(
                    self.version_line), r.line))
            return
        self.version = r.version
        self.version_line = r.line

    def _new_symbols(self, r):
        self.new_symbols.extend(r.symbols)

    def _bit_timing(self, r):
        if r.baudrate is not None:
            self.bit_timing = BitTiming(r.baudrate, r.btr1, r.btr2)

    def _nodes(self, r):
        for name in r.names:
            if name in self.nodes:
                self.diag.warn("BU_: repeated node \"{}\" at line {}, "
                               "removing duplicate".format(name, r.line))
                continue
            self.nodes[name] = {'comments': [], 'attributes': {}}

    def _value_table(self, r):
        if r.name in self.value_tables:
            self.diag.error(DuplicateIdentifierError(
                "multiply defined table \"{}\"".format(r.name), r.line))
            return
        vals = {}
        for value, label in r.entries:
            if value in vals:
                self.diag.warn("table \"{}\" has value {} defined more than "
                               "once, last definition is used".format(
                                   r.name, value))
            vals[value] = label
        self.value_tables[r.name] = vals

    def _attribute_definition(self, r):
        key = (r.object_type, r.name)
        if key in self.attribute_definitions:
            self.diag.error(DuplicateIdentifierError(
                "attribute \"{}\" already defined for \"{}\"".format(
                    r.name, r.object_type.value), r.line))
            return
        self.attribute_definitions[key] = AttributeDefinition(
            r.name, r.object_type, r.value_type, r.minimum, r.maximum,
            r.choices)

    def _message(self, r):
        if r.name == INDEPENDENT_SIGNALS:
            self._ignored_ids.add(r.frame_id)
            self._current = None
            self._skip_signals = True
            return
        frame_id = MessageId(r.frame_id)
        if not frame_id.is_extended() and frame_id.raw() > MAX_STANDARD_ID:
            self.diag.warn("standard message id {} of message \"{}\" at line "
                           "{} exceeds 11 bits".format(frame_id.raw(), r.name,
                                                       r.line))
        if frame_id.is_extended() and frame_id.raw() > MAX_EXTENDED_ID:
            self.diag.warn("extended message id {} of message \"{}\" at line "
                           "{} exceeds 29 bits".format(frame_id.raw(), r.name,
                                                       r.line))
        transmitters = []
        if r.transmitter is not None and r.transmitter != NO_NODE:
            transmitters.append(r.transmitter)
        msg = {'id': frame_id, 'name': r.name, 'size': r.size, 'line': r.line,
               'transmitters': transmitters, 'signals': [],
               'signals_dict': {}, 'comments': [], 'attributes': {},
               'signal_groups': {}, 'multiplex_ranges': []}
        self.messages.append(msg)
        self._current = msg
        self._skip_signals = False

    def _signal(self, r):
        msg = self._current
        if msg is None:
            if not self._skip_signals:
                self.diag.error(SemanticError(
                    "signal \"{}\" is not preceded by a message".format(
                        r.name), r.line))
            return
        try:
            layout = bitlayout.resolve(r.start_bit, r.length, r.byte_order,
                                       msg['size'], r.name, r.line)
        except BitRangeOverflowError as err:
            self.diag.error(BitRangeOverflowError(
                "{} in message \"{}\"".format(err.msg, msg['name']), r.line))
            layout = None
        sig = {'record': r, 'layout': layout, 'comments': [],
               'attributes': {}, 'value_descriptions': {},
               'value_table': None, 'value_type': None,
               'multiplexor': None, 'multiplex_ranges': ()}
        msg['signals'].append(sig)
        msg['signals_dict'].setdefault(r.name, sig)

    # *** references

    def _message_ref(self, frame_id, line, context):
        """Return message draft with identifier frame_id, or None.

        References to the pseudo message of independent signals are
        ignored silently.
        """
        msg = self._by_id.get(frame_id)
        if msg is None and frame_id not in self._ignored_ids:
            self.diag.dangling("undefined message id {} in {}".format(
                frame_id, context), line)
        return msg

    def _signal_ref(self, frame_id, name, line, context):
        msg = self._message_ref(frame_id, line, context)
        if msg is None:
            return None
        sig = msg['signals_dict'].get(name)
        if sig is None:
            self.diag.dangling("undefined signal \"{}\" of message {} in "
                               "{}".format(name, frame_id, context), line)
        return sig

    def _target(self, target, line, context):
        """Return draft that target refers to, or None.

        """
        typ = target.object_type
        if typ is ObjectType.NETWORK:
            return self.network
        if typ is ObjectType.NODE:
            node = self.nodes.get(target.name)
            if node is None:
                self.diag.dangling("undefined node \"{}\" in {}".format(
                    target.name, context), line)
            return node
        if typ is ObjectType.MESSAGE:
            return self._message_ref(target.frame_id, line, context)
        if typ is ObjectType.SIGNAL:
            return self._signal_ref(target.frame_id, target.name, line,
                                    context)
        # environment variables are not part of the model
        log.debug("ignoring %s of %s at line %d", context, target, line)
        return None

    def _transmitters(self, r):
        msg = self._message_ref(r.frame_id, r.line, "BO_TX_BU_ statement")
        if msg is None:
            return
        for tx in r.transmitters:
            if tx != NO_NODE and tx not in msg['transmitters']:
                msg['transmitters'].append(tx)

    def _comment(self, r):
        obj = self._target(r.target, r.line, "comment")
        if obj is not None:
            obj['comments'].append(r.text)

    def _coerce(self, definition, value, line):
        try:
            value = definition.coerce(value)
        except ValueError as err:
            self.diag.warn("attribute \"{}\" at line {}: {}, value kept as "
                           "written".format(definition.name, line, err))
            return value
        if not isinstance(value, str) and not definition.within_limits(value):
            self.diag.warn("attribute \"{}\" at line {}: value {} outside "
                           "{} to {}".format(definition.name, line, value,
                                             definition.minimum,
                                             definition.maximum))
        return value

    def _attribute_default(self, r):
        keys = [key for key in self.attribute_definitions if key[1] == r.name]
        if not keys:
            self.diag.dangling("default value for undefined attribute "
                               "\"{}\"".format(r.name), r.line)
            return
        for key in keys:
            definition = self.attribute_definitions[key]
            if definition.default is not None:
                self.diag.error(DuplicateIdentifierError(
                    "attribute default value for \"{}\" multiply "
                    "defined".format(r.name), r.line))
                return
            self.attribute_definitions[key] = dataclasses.replace(
                definition, default=self._coerce(definition, r.value, r.line))

    def _attribute_value(self, r):
        context = "value of attribute \"{}\"".format(r.name)
        obj = self._target(r.target, r.line, context)
        if obj is None:
            return
        definition = self.attribute_definitions.get(
            (r.target.object_type, r.name))
        if definition is None:
            self.diag.dangling("attribute \"{}\" of {} is not defined".format(
                r.name, r.target), r.line)
            value = r.value
        else:
            value = self._coerce(definition, r.value, r.line)
        if r.name in obj['attributes']:
            self.diag.error(DuplicateIdentifierError(
                "attribute \"{}\" multiply defined for {}".format(
                    r.name, r.target), r.line))
            return
        obj['attributes'][r.name] = value

    def _value_descriptions(self, r):
        if r.frame_id is None:
            log.debug("ignoring values of environment variable \"%s\"",
                      r.name)
            return
        sig = self._signal_ref(r.frame_id, r.name, r.line,
                               "signal value description")
        if sig is None:
            return
        if r.table_name is not None:
            table = self.value_tables.get(r.table_name)
            if table is None:
                self.diag.dangling("undefined value table \"{}\" for signal "
                                   "\"{}\"".format(r.table_name, r.name),
                                   r.line)
                return
            sig['value_table'] = r.table_name
            sig['value_descriptions'] = dict(table)
            return
        for val, desc in r.entries:
            sig['value_descriptions'][val] = desc

    def _signal_group(self, r):
        msg = self._message_ref(r.frame_id, r.line,
                                "definition of signal group \"{}\"".format(
                                    r.name))
        if msg is None:
            return
        if r.name in msg['signal_groups']:
            self.diag.error(DuplicateIdentifierError(
                "signal group \"{}\" already defined for message "
                "\"{}\"".format(r.name, msg['name']), r.line))
            return
        signals = list(dict.fromkeys(r.signal_names))  # drop duplicates
        undef = [s for s in signals if s not in msg['signals_dict']]
        if undef:
            self.diag.dangling("undefined signals in definition of group "
                               "\"{}\" for message \"{}\": {}".format(
                                   r.name, msg['name'], ", ".join(undef)),
                               r.line)
            signals = [s for s in signals if s not in undef]
        msg['signal_groups'][r.name] = SignalGroup(r.name, r.repetitions,
                                                   tuple(signals))

    def _signal_value_type(self, r):
        sig = self._signal_ref(r.frame_id, r.signal_name, r.line,
                               "signal value-type statement")
        if sig is None:
            return
        sig['value_type'] = r.value_type
        if r.value_type in FLOAT_TYPES:
            length = FLOAT_TYPES[r.value_type][1]
            if sig['record'].length != length:
                self.diag.warn("signal \"{}\" at line {} has value type {} "
                               "but {} bits".format(r.signal_name, r.line,
                                                    r.value_type,
                                                    sig['record'].length))

    def _multiplex_range(self, r):
        msg = self._message_ref(r.frame_id, r.line,
                                "extended multiplexing statement")
        if msg is not None:
            msg['multiplex_ranges'].append(r)

    # *** multiplexing

    def _resolve_multiplexing(self, msg):
        muxes = [s for s in msg['signals'] if s['record'].is_multiplexor]
        muxed = [s for s in msg['signals']
                 if s['record'].multiplex_value is not None]
        if msg['multiplex_ranges']:
            self._resolve_extended(msg, muxes, muxed)
            return
        if len(muxes) > 1:
            self.diag.error(MultipleMultiplexorsError(
                "message \"{}\" has more than one multiplexor: {}".format(
                    msg['name'], ", ".join(s['record'].name for s in muxes)),
                muxes[1]['record'].line))
            return
        if not muxed:
            return
        if not muxes or muxes[0] in muxed:
            self.diag.error(MultiplexorMissingError(
                "no multiplexor for multiplexed signals of message \"{}\": "
                "{}".format(msg['name'],
                            ", ".join(s['record'].name for s in muxed)),
                muxed[0]['record'].line))
            return
        self._assign(msg, muxes[0], muxed)

    def _assign(self, msg, mux, signals):
        mrec = mux['record']
        if mux['layout'] is None:
            # invalid length, reported with the bit layout
            return
        for sig in signals:
            value = sig['record'].multiplex_value
            if not 0 <= value < 2**mrec.length:
                self.diag.error(MultiplexValueError(
                    "multiplex value for signal \"{}\" in message \"{}\" is "
                    "not in range of multiplexor \"{}\"".format(
                        sig['record'].name, msg['name'], mrec.name),
                    sig['record'].line))
                continue
            sig['multiplexor'] = mrec.name
            sig['multiplex_ranges'] = (Range(value, value),)

    def _resolve_extended(self, msg, muxes, muxed):
        sd = msg['signals_dict']
        claimed = set()
        for r in msg['multiplex_ranges']:
            sig = sd.get(r.signal_name)
            mux = sd.get(r.multiplexor_name)
            if sig is None or mux is None:
                name = r.signal_name if sig is None else r.multiplexor_name
                self.diag.dangling("unknown signal name \"{}\" in extended "
                                   "multiplexing statement for message "
                                   "\"{}\"".format(name, msg['name']), r.line)
                continue
            if not mux['record'].is_multiplexor:
                self.diag.error(MultiplexorMissingError(
                    "named multiplexor \"{}\" in extended multiplexing "
                    "statement for message \"{}\" is not a multiplexor".format(
                        r.multiplexor_name, msg['name']), r.line))
                continue
            if r.signal_name in claimed:
                self.diag.error(MultipleMultiplexorsError(
                    "signal \"{}\" in message \"{}\" multiplexed by more than "
                    "one multiplexor".format(r.signal_name, msg['name']),
                    r.line))
                continue
            claimed.add(r.signal_name)
            value = sig['record'].multiplex_value
            if value is None:
                self.diag.error(MultiplexValueError(
                    "signal \"{}\" in extended multiplexing statement for "
                    "message \"{}\" is not multiplexed".format(
                        r.signal_name, msg['name']), r.line))
                continue
            ranges = tuple(Range(low, high) for low, high in r.ranges)
            if not any(rg.within(value) for rg in ranges):
                self.diag.error(MultiplexValueError(
                    "multiplex value {} of signal \"{}\" in message \"{}\" is "
                    "outside the ranges of multiplexor \"{}\"".format(
                        value, r.signal_name, msg['name'],
                        r.multiplexor_name), r.line))
                continue
            sig['multiplexor'] = r.multiplexor_name
            sig['multiplex_ranges'] = ranges
        rest = [s for s in muxed if s['record'].name not in claimed]
        if not rest:
            return
        top = [m for m in muxes if m['record'].multiplex_value is None]
        if len(top) == 1:
            self._assign(msg, top[0], rest)
            return
        self.diag.error(MultiplexorMissingError(
            "there were signals with unspecified multiplexor in message "
            "\"{}\": {}".format(msg['name'],
                                ", ".join(s['record'].name for s in rest)),
            rest[0]['record'].line))

    # *** model

    def _default(self, object_type, name, fallback):
        definition = self.attribute_definitions.get((object_type, name))
        if definition is None or definition.default is None:
            return fallback
        return definition.default

    def _build_signal(self, sig, start_value):
        r = sig['record']
        if sig['value_type'] in FLOAT_TYPES:
            value_type = FLOAT_TYPES[sig['value_type']][0]
        elif r.is_signed:
            value_type = ValueType.SIGNED
        else:
            value_type = ValueType.UNSIGNED
        initial = sig['attributes'].get(START_VALUE_ATTRIBUTE, start_value)
        if isinstance(initial, str):
            initial = 0
        return Signal(
            name=r.name, start_bit=r.start_bit, length=r.length,
            byte_order=r.byte_order, value_type=value_type,
            factor=r.factor, offset=r.offset,
            minimum=r.minimum, maximum=r.maximum, unit=r.unit,
            receivers=tuple(n for n in r.receivers if n != NO_NODE),
            layout=sig['layout'],
            is_multiplexor=r.is_multiplexor,
            multiplex_value=r.multiplex_value,
            multiplexor=sig['multiplexor'],
            multiplex_ranges=sig['multiplex_ranges'],
            value_table=sig['value_table'],
            value_descriptions=frozen_mapping(sig['value_descriptions']),
            comments=tuple(sig['comments']),
            attributes=frozen_mapping(sig['attributes']),
            initial_value=initial)

    def _build_message(self, msg, cycle_time, start_value):
        cycle = msg['attributes'].get(CYCLE_TIME_ATTRIBUTE, cycle_time)
        if isinstance(cycle, str):
            cycle = 0
        transmitters = tuple(msg['transmitters'])
        return Message(
            frame_id=msg['id'], name=msg['name'], size=msg['size'],
            transmitter=transmitters[0] if transmitters else None,
            transmitters=transmitters,
            signals=tuple(self._build_signal(s, start_value)
                          for s in msg['signals']),
            comments=tuple(msg['comments']),
            attributes=frozen_mapping(msg['attributes']),
            signal_groups=frozen_mapping(msg['signal_groups']),
            cycle_time=int(cycle))

    def build(self):
        """Return Model of everything added.

        Must only be called after resolve() when no errors were found.
        """
        cycle_time = self._default(ObjectType.MESSAGE, CYCLE_TIME_ATTRIBUTE,
                                   0)
        start_value = self._default(ObjectType.SIGNAL, START_VALUE_ATTRIBUTE,
                                    0)
        nodes = {name: Node(name, tuple(d['comments']),
                            frozen_mapping(d['attributes']))
                 for name, d in self.nodes.items()}
        tables = {name: ValueTable(name, frozen_mapping(vals))
                  for name, vals in self.value_tables.items()}
        messages = tuple(self._build_message(m, cycle_time, start_value)
                         for m in self.messages)
        return Model(
            version=self.version,
            new_symbols=tuple(self.new_symbols),
            bit_timing=self.bit_timing,
            nodes=frozen_mapping(nodes),
            value_tables=frozen_mapping(tables),
            messages=messages,
            comments=tuple(self.network['comments']),
            attributes=frozen_mapping(self.network['attributes']),
            attribute_definitions=tuple(self.attribute_definitions.values()))
