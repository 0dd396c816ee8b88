from itertools import product

import pytest

from automaton import DFA, NFA
from grammar import Grammar


def words(alphabet, max_length):
    """Every word over alphabet up to max_length, as strings."""
    symbols = sorted(alphabet)
    for length in range(max_length + 1):
        for letters in product(symbols, repeat=length):
            yield "".join(letters)


@pytest.fixture
def all_words():
    return words


@pytest.fixture
def ends_in_01():
    # Strings over {0,1} ending in "01"; "dead" is unreachable
    return DFA(
        states={"q0", "q1", "q2", "dead"},
        alphabet={"0", "1"},
        transitions={
            ("q0", "0"): "q1",
            ("q0", "1"): "q0",
            ("q1", "0"): "q1",
            ("q1", "1"): "q2",
            ("q2", "0"): "q1",
            ("q2", "1"): "q0",
            ("dead", "0"): "dead",
            ("dead", "1"): "dead",
        },
        start="q0",
        accepting={"q2"},
    )


@pytest.fixture
def redundant_dfa():
    # B ~ C and D ~ E
    return DFA(
        states={"A", "B", "C", "D", "E"},
        alphabet={"a", "b"},
        transitions={
            ("A", "a"): "B",
            ("A", "b"): "C",
            ("B", "b"): "D",
            ("C", "b"): "E",
            ("D", "a"): "C",
            ("D", "b"): "E",
            ("E", "a"): "B",
            ("E", "b"): "D",
        },
        start="A",
        accepting={"D", "E"},
    )


@pytest.fixture
def ends_in_ab():
    return NFA(
        states={"q0", "q1", "q2"},
        alphabet={"a", "b"},
        transitions={
            ("q0", "a"): {"q0", "q1"},
            ("q0", "b"): {"q0"},
            ("q1", "b"): {"q2"},
        },
        start="q0",
        accepting={"q2"},
    )


@pytest.fixture
def right_linear():
    return Grammar(
        {"S", "A", "B", "C"},
        {"a", "b", "c"},
        "S",
        {
            "S": {"aA", "bB", "aC", "b"},
            "A": {"bA", "bB", "c"},
            "B": {"aA", "cC", "b"},
            "C": {"bB", "bC", "a"},
        },
    )
