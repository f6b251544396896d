"""Tests of splitting dbc text into statements."""
import pytest

from dbcmodel.errors import LexError
from dbcmodel.lexer import Lexer, Statement


def statements(text):
    return list(Lexer(text))


def test_one_statement_per_line():
    """Test that blank lines and comment lines are dropped."""
    text = 'VERSION "1.0"\n\n// a comment\nBU_: A B\r\n  BO_ 1 M: 8 A\n'
    result = statements(text)
    assert [s.text for s in result] == ['VERSION "1.0"', 'BU_: A B',
                                        'BO_ 1 M: 8 A']
    assert [s.line for s in result] == [1, 4, 5]
    assert result[2].column == 2
    assert [s.keyword for s in result] == ['VERSION', 'BU_', 'BO_']


def test_quoted_line_break():
    """Test that a line break inside a string does not end a statement."""
    result = statements('CM_ BO_ 1 "first\nsecond";\nBU_: A\n')
    assert len(result) == 2
    assert result[0].text == 'CM_ BO_ 1 "first\nsecond";'
    assert result[1].line == 3


def test_quote_in_comment_line():
    """Test that a quote in a comment line does not open a string."""
    result = statements('// tool says "hello\nBO_ 100 M: 8 X\n')
    assert len(result) == 1
    assert result[0].keyword == 'BO_'
    assert result[0].line == 2


def test_escaped_quote():
    """Test that an escaped quote does not close a string."""
    result = statements('CM_ "say \\"hi\\"";\nBU_: A')
    assert [s.keyword for s in result] == ['CM_', 'BU_']
    assert result[1].line == 2


def test_unterminated_string():
    """Test that the error names the line where the string starts."""
    with pytest.raises(LexError) as excinfo:
        statements('BU_: A\nCM_ "open\nmore\n')
    assert excinfo.value.line == 2


def test_new_symbols_folded():
    """Test that the indented symbol lines belong to NS_."""
    text = 'VERSION ""\n\nNS_ :\n\tNS_DESC_\n\tCM_\n\nBS_:\n'
    result = statements(text)
    assert [s.keyword for s in result] == ['VERSION', 'NS_', 'BS_']
    assert result[1].line == 3
    assert result[1].text == 'NS_ :\n\tNS_DESC_\n\tCM_'
    assert result[2].line == 7


def test_byte_order_mark_and_missing_final_newline():
    result = statements('\ufeffVERSION "x"')
    assert result == [Statement(1, 0, 'VERSION "x"')]


def test_iteration_restarts():
    """Test that every iteration yields all statements again."""
    lexer = Lexer('BU_: A\nBO_ 1 M: 8 A\n')
    assert list(lexer) == list(lexer)
    assert len(list(lexer)) == 2


def test_keyword_of_statement_without_identifier():
    assert Statement(1, 0, '123 abc').keyword is None
    assert Statement(1, 0, 'SG_MUL_VAL_ 1 a b 0-1;').keyword == 'SG_MUL_VAL_'
