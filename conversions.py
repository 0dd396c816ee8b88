"""
Named entry points of the conversion pipeline.

Grammar -> NFA -> DFA -> (minimize) -> NFA. Every step is a pure function
that can be called on its own; callers chain them as needed.
"""
import logging

from automaton import DFA, NFA
from grammar import Grammar

logger = logging.getLogger(__name__)


def grammar_to_nfa(grammar: Grammar) -> NFA:
    """Raises NotRegularGrammar for bodies that are not right-linear."""
    logger.debug("grammar_to_nfa: %r", grammar)
    return grammar.to_NFA()


def nfa_to_dfa(nfa: NFA) -> DFA:
    logger.debug("nfa_to_dfa: %d states, %d symbols", len(nfa.states), len(nfa.alphabet))
    return nfa.to_DFA()


def minimize_dfa(dfa: DFA) -> DFA:
    logger.debug("minimize_dfa: %d states", len(dfa.states))
    return dfa.minimize()


def dfa_to_nfa(dfa: DFA) -> NFA:
    return dfa.to_NFA()


def minimize_grammar(grammar: Grammar) -> Grammar:
    """Raises EmptyLanguage when the start symbol derives no terminal string."""
    logger.debug("minimize_grammar: %r", grammar)
    return grammar.minimize()
