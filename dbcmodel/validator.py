"""Cross checks of assembled messages.

The functions take the message drafts of an Assembler and return lists of
errors rather than raising them.
"""
#
# Copyright 2024 Einar Halvorsen
#
# License: GPL-3.0-or-later
#
from .errors import DanglingReferenceError, DuplicateIdentifierError
from .model import NO_NODE


def message_id_errors(messages):
    """Return errors for messages sharing an identifier.

    Identifiers are compared as bus identifier and kind, so the same
    number used for a standard and an extended message is not an error.
    """
    errors = []
    seen = {}
    for msg in messages:
        key = (msg['id'].raw(), msg['id'].kind())
        first = seen.setdefault(key, msg)
        if first is not msg:
            errors.append(DuplicateIdentifierError(
                "multiple definitions of message {}: \"{}\" and \"{}\", first "
                "at line {}".format(msg['id'], first['name'], msg['name'],
                                    first['line']), msg['line']))
    return errors


def signal_name_errors(messages):
    """Return errors for signal names used more than once in a message.

    """
    errors = []
    for msg in messages:
        names = set()
        for sig in msg['signals']:
            r = sig['record']
            if r.name in names:
                errors.append(DuplicateIdentifierError(
                    "signal \"{}\" defined more than once in message "
                    "\"{}\"".format(r.name, msg['name']), r.line))
            names.add(r.name)
    return errors


def node_reference_errors(messages, nodes):
    """Return errors for transmitters and receivers that are not nodes.

    """
    errors = []
    for msg in messages:
        for tx in msg['transmitters']:
            if tx not in nodes:
                errors.append(DanglingReferenceError(
                    "transmitter \"{}\" of message \"{}\" not among defined "
                    "nodes".format(tx, msg['name']), msg['line']))
        for sig in msg['signals']:
            r = sig['record']
            for rx in r.receivers:
                if rx != NO_NODE and rx not in nodes:
                    errors.append(DanglingReferenceError(
                        "receiver \"{}\" of signal \"{}\" not among defined "
                        "nodes".format(rx, r.name), r.line))
    return errors


def validate(messages, nodes, strict=False):
    """Return list of errors found in the assembled messages.

    Args:
        messages(list): Message drafts in file order.
        nodes:          Names of declared nodes.
        strict(bool):   Also check that transmitters and receivers are
                        declared nodes.
    """
    errors = message_id_errors(messages) + signal_name_errors(messages)
    if strict:
        errors += node_reference_errors(messages, nodes)
    return errors
