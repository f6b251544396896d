"""Tests of linking records into a model."""
import warnings

import pytest

from dbcmodel.assembler import Assembler
from dbcmodel.errors import (DatabaseWarning, DuplicateIdentifierError,
                             SemanticError)
from dbcmodel.grammar import parse_statement
from dbcmodel.lexer import Lexer
from dbcmodel.options import Diagnostics, ParseOptions


def assemble(text, **options):
    assembler = Assembler(Diagnostics(ParseOptions(**options)))
    for statement in Lexer(text):
        assembler.add(parse_statement(statement))
    assembler.resolve()
    return assembler


def test_references_before_definitions():
    """Test that comments and attributes may precede what they refer to."""
    text = ('CM_ BO_ 1 "first";\n'
            'BA_ "Cycle" BO_ 1 20;\n'
            'BA_DEF_ BO_ "Cycle" INT 0 1000;\n'
            'BO_ 1 M: 8 A\n')
    model = assemble(text).build()
    msg = model.message_by_id(1)
    assert msg.comments == ('first',)
    assert msg.attributes['Cycle'] == 20


def test_signal_without_message():
    with pytest.raises(SemanticError):
        assemble(' SG_ S : 0|8@1+ (1,0) [0|0] "" A\n')


def test_discarded_message_drops_its_signals():
    assembler = Assembler(Diagnostics(ParseOptions(collect_all_errors=True)))
    statements = list(Lexer('BO_ 1 : 8 A\n'
                            ' SG_ S : 0|8@1+ (1,0) [0|0] "" A\n'))
    assembler.discard(statements[0])
    assembler.add(parse_statement(statements[1]))
    assembler.resolve()
    assert assembler.diag.errors == []
    assert assembler.messages == []


def test_independent_signals_ignored():
    """Test that the pseudo message and references to it vanish."""
    text = ('BO_ 3221225472 VECTOR__INDEPENDENT_SIG_MSG: 0 Vector__XXX\n'
            ' SG_ Orphan : 0|8@1+ (1,0) [0|0] "" Vector__XXX\n'
            'CM_ SG_ 3221225472 Orphan "unused";\n')
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        model = assemble(text).build()
    assert model.messages == ()


def test_duplicate_nodes_warn():
    with pytest.warns(DatabaseWarning, match="repeated node"):
        assembler = assemble('BU_: A B A\n')
    assert list(assembler.build().nodes) == ['A', 'B']


def test_value_tables():
    with pytest.warns(DatabaseWarning):
        model = assemble('VAL_TABLE_ T 0 "a" 0 "b" ;\n').build()
    assert model.value_tables['T'].label(0) == 'b'
    with pytest.raises(DuplicateIdentifierError):
        assemble('VAL_TABLE_ T 0 "a" ;\nVAL_TABLE_ T 1 "b" ;\n')


def test_duplicate_attribute_definition():
    text = 'BA_DEF_ BO_ "X" INT 0 1;\nBA_DEF_ BO_ "X" INT 0 2;\n'
    with pytest.raises(DuplicateIdentifierError):
        assemble(text)
    # same name for another kind of object is fine
    assemble('BA_DEF_ BO_ "X" INT 0 1;\nBA_DEF_ SG_ "X" INT 0 2;\n')


def test_duplicate_attribute_value():
    text = ('BA_DEF_ "X" INT 0 10;\n'
            'BA_ "X" 1;\n'
            'BA_ "X" 2;\n')
    with pytest.raises(DuplicateIdentifierError):
        assemble(text)


def test_attribute_value_of_wrong_type_warns():
    text = ('BA_DEF_ "X" INT 0 10;\n'
            'BA_ "X" "ten";\n')
    with pytest.warns(DatabaseWarning, match="expected number"):
        model = assemble(text).build()
    assert model.attributes['X'] == 'ten'


def test_attribute_default():
    """Test that defaults are stored with the definition."""
    text = ('BA_DEF_ BU_ "Layer" ENUM "Low","High";\n'
            'BA_DEF_DEF_ "Layer" 1;\n')
    model = assemble(text).build()
    assert model.attribute_definitions[0].default == 'High'


def test_standard_id_above_11_bits_warns():
    with pytest.warns(DatabaseWarning, match="exceeds 11 bits"):
        assemble('BO_ 2048 M: 8 A\n')


def test_extended_id_above_29_bits_warns():
    with pytest.warns(DatabaseWarning, match="exceeds 29 bits"):
        assemble('BO_ 3758096384 M: 8 A\n')


def test_errors_collected():
    """Test that errors are kept instead of raised when collecting."""
    text = (' SG_ S : 0|8@1+ (1,0) [0|0] "" A\n'
            'BO_ 1 M: 1 A\n'
            ' SG_ T : 0|16@1+ (1,0) [0|0] "" A\n')
    assembler = assemble(text, collect_all_errors=True)
    assert [e.line for e in assembler.diag.errors] == [1, 3]
    assert 'message "M"' in str(assembler.diag.errors[1])

