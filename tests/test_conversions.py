import logging

import pytest

from conversions import dfa_to_nfa, grammar_to_nfa, minimize_dfa, minimize_grammar, nfa_to_dfa
from errors import AutomataError, EmptyLanguage, NotRegularGrammar
from grammar import Grammar


@pytest.fixture
def ends_in_01_grammar():
    return Grammar.from_productions("S", {"S": {"0S", "1S", "0A"}, "A": {"1"}})


def test_pipeline(ends_in_01_grammar, ends_in_01, all_words):
    nfa = grammar_to_nfa(ends_in_01_grammar)
    dfa = nfa_to_dfa(nfa)
    minimized = minimize_dfa(dfa)

    assert len(minimized.states) == 3
    assert minimized.is_isomorphic(ends_in_01.minimize())
    for word in all_words({"0", "1"}, 6):
        assert minimized.accepts(word) == word.endswith("01"), word


def test_dfa_back_to_nfa(ends_in_01_grammar, all_words):
    minimized = minimize_dfa(nfa_to_dfa(grammar_to_nfa(ends_in_01_grammar)))
    nfa = dfa_to_nfa(minimized)

    for word in all_words({"0", "1"}, 5):
        assert nfa.accepts(word) == minimized.accepts(word), word
    assert minimize_dfa(nfa_to_dfa(nfa)).is_isomorphic(minimized)


def test_minimize_grammar_then_convert(all_words):
    grammar = Grammar.from_productions(
        "S", {"S": {"A", "bS"}, "A": {"a", "aA"}, "B": {"c"}, "D": {"D"}}
    )

    minimized = minimize_grammar(grammar)
    assert minimized.nonterminals == frozenset({"S", "A"})

    before = grammar_to_nfa(grammar)
    after = grammar_to_nfa(minimized)
    for word in all_words({"a", "b"}, 5):
        assert before.accepts(word) == after.accepts(word), word


def test_minimize_grammar_empty_language():
    grammar = Grammar.from_productions("S", {"S": {"aS"}})
    with pytest.raises(EmptyLanguage):
        minimize_grammar(grammar)


def test_errors_share_a_base():
    with pytest.raises(AutomataError):
        grammar_to_nfa(Grammar.from_productions("S", {"S": {"aSb", "ab"}}))
    assert issubclass(NotRegularGrammar, ValueError)


def test_minimize_logs_summary(caplog, redundant_dfa):
    with caplog.at_level(logging.DEBUG, logger="automaton"):
        minimize_dfa(redundant_dfa)
    assert "5 states -> 3 states" in caplog.text
