import logging

import pytest

from automaton import DFA, NFA
from errors import MalformedInput
from grammar import Grammar
from io_utils import (
    detect_automaton,
    load_automata,
    load_from_file,
    load_from_string,
    parse_automaton,
    parse_grammar,
)
from symbols import EPSILON

DFA_TEXT = """
type: dfa
alphabet: 0 1
states: q0 q1 q2
start: q0
accept: q2
q0 0 q1
q0 1 q0
q1 0 q1
q1 1 q2
q2 0 q1
q2 1 q0
"""

NFA_TEXT = """
alphabet: a b
start: p
accept: r
p -> a -> p
p -> a -> r
p -> e -> r
"""


def test_parse_dfa(ends_in_01):
    dfa = parse_automaton(DFA_TEXT)

    assert isinstance(dfa, DFA)
    assert dfa == ends_in_01.remove_unreachable_states()


def test_parse_nfa_infers_states_and_kind():
    nfa = parse_automaton(NFA_TEXT)

    assert isinstance(nfa, NFA)
    assert nfa.states == frozenset({"p", "r"})
    assert nfa.targets("p", "a") == frozenset({"p", "r"})
    assert nfa.targets("p", EPSILON) == frozenset({"r"})
    assert nfa.alphabet == frozenset({"a", "b"})


def test_e_is_a_symbol_when_declared():
    dfa = parse_automaton("alphabet: e\nstart: p\naccept: p\np e p")
    assert isinstance(dfa, DFA)
    assert dfa.accepts("ee")


def test_alphabet_inferred_from_transitions():
    dfa = parse_automaton("start: p\naccept: r\np x r\nr y p")
    assert dfa.alphabet == frozenset({"x", "y"})


@pytest.mark.parametrize(
    "text",
    [
        "alphabet: a\naccept: p\np a p",
        "type: pda\nstart: p",
        "start: p\np a",
        "type: dfa\nalphabet: a\nstart: p\np a p\np a r",
    ],
)
def test_parse_automaton_errors(text):
    with pytest.raises(MalformedInput):
        parse_automaton(text)


def test_load_automata_splits_blocks():
    automata = load_automata(DFA_TEXT + "---" + NFA_TEXT)
    assert [type(a) for a in automata] == [DFA, NFA]


def test_parse_grammar(right_linear):
    text = """
    # four nonterminals
    S -> aA | bB | aC | b
    A -> bA | bB | c
    B -> aA | cC | b
    C -> bB | bC | a
    """
    assert parse_grammar(text) == right_linear


def test_parse_grammar_notation():
    grammar = parse_grammar(
        """
        START: <Expr>
        <Expr> ::= <Expr> + <Term> | <Term>
        <Term> → x | ε
        """
    )

    assert grammar.start == "Expr"
    assert grammar.nonterminals == frozenset({"Expr", "Term"})
    assert grammar.terminals == frozenset({"+", "x"})
    assert grammar.productions["Term"] == frozenset({("x",), ()})


def test_parse_grammar_declared_symbols():
    grammar = parse_grammar("NONTERMINALS: X\nTERMINALS: a B\nX -> aB")
    assert grammar.start == "X"
    assert grammar.terminals == frozenset({"a", "B"})


def test_parse_grammar_without_productions():
    with pytest.raises(MalformedInput):
        parse_grammar("# nothing here")


def test_detect_automaton():
    assert detect_automaton(DFA_TEXT)
    assert detect_automaton("p -> a -> q")
    assert not detect_automaton("START: S\nS -> aS | b")
    assert not detect_automaton("<S> ::= a")


def test_named_sections():
    content = f"ends:\n{DFA_TEXT}\nlang:\nS -> aS | b\n"

    automata, grammars = load_from_string(content)

    assert set(automata) == {"ends"}
    assert set(grammars) == {"lang"}
    assert isinstance(grammars["lang"], Grammar)


def test_bad_section_is_skipped_with_warning(caplog):
    content = "good:\nS -> a\nbroken:\ntype: dfa\nstart: p\np a p\np a q\n"

    with caplog.at_level(logging.WARNING, logger="io_utils"):
        automata, grammars = load_from_string(content)

    assert "good" in grammars
    assert "broken" not in automata
    assert "Failed to load 'broken'" in caplog.text


def test_empty_accept_line_is_not_a_section():
    content = "type: dfa\nalphabet: a\nstates: p\nstart: p\naccept:\np a p\n"

    automata, grammars = load_from_string(content, base_name="x")

    assert set(automata) == {"x"}
    assert automata["x"].accepting == frozenset()
    assert automata["x"].step("p", "a") == "p"
    assert grammars == {}


def test_grammar_keys_are_not_sections():
    automata, grammars = load_from_string("START:\nS -> a", base_name="g")
    assert set(grammars) == {"g"}


def test_text_before_first_section_loads_under_base_name(caplog):
    content = "# shared file\nS -> aS | b\nsecond:\nS -> c\n"

    with caplog.at_level(logging.WARNING, logger="io_utils"):
        automata, grammars = load_from_string(content, base_name="first")

    assert set(grammars) == {"first", "second"}
    assert grammars["first"].productions["S"] == frozenset({("a", "S"), ("b",)})
    assert caplog.text == ""


def test_unnamed_content_uses_base_name():
    automata, grammars = load_from_string("S -> a", base_name="single")
    assert automata == {}
    assert set(grammars) == {"single"}


def test_load_from_file(tmp_path):
    path = tmp_path / "ends.txt"
    path.write_text(DFA_TEXT, encoding="utf-8")

    automata, grammars = load_from_file(str(path))

    assert set(automata) == {"ends"}
    assert grammars == {}
