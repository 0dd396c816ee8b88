import pytest

import cli
from automaton import DFA, NFA
from cli import execute
from errors import EmptyLanguage
from grammar import Grammar

NFA_FILE = """
ends_ab:
alphabet: a b
start: q0
accept: q2
q0 a q0
q0 a q1
q0 b q0
q1 b q2

lang:
S -> aS | bA
A -> c | B
B -> B
"""


@pytest.fixture
def session(tmp_path):
    path = tmp_path / "items.txt"
    path.write_text(NFA_FILE, encoding="utf-8")
    automata, grammars = {}, {}
    execute(f"load {path}", automata, grammars)
    return automata, grammars


def test_load(session):
    automata, grammars = session
    assert isinstance(automata["ends_ab"], NFA)
    assert isinstance(grammars["lang"], Grammar)


def test_list(session, capsys):
    execute("list", *session)
    out = capsys.readouterr().out
    assert "ends_ab: NFA, 3 states" in out
    assert "lang: right-regular" in out


def test_to_dfa_minimize_and_test(session, capsys):
    automata, grammars = session

    execute("to_dfa ends_ab", automata, grammars)
    execute("minimize ends_ab_dfa small", automata, grammars)
    assert isinstance(automata["ends_ab_dfa"], DFA)
    assert len(automata["small"].states) == 3

    capsys.readouterr()
    execute("test small aab", automata, grammars)
    execute("test small aba", automata, grammars)
    assert capsys.readouterr().out.split() == ["ACCEPTED", "REJECTED"]


def test_multi_character_symbols(capsys):
    automata = {
        "tokens": DFA(
            states={"p", "r"},
            alphabet={"num", "+"},
            transitions={("p", "num"): "r", ("r", "+"): "p"},
            start="p",
            accepting={"r"},
        )
    }

    execute("test tokens num + num", automata, {})
    execute("test tokens num +", automata, {})
    execute("test tokens", automata, {})
    assert capsys.readouterr().out.split() == ["ACCEPTED", "REJECTED", "REJECTED"]


def test_to_dfa_needs_nfa(session, capsys):
    automata, grammars = session
    execute("to_dfa ends_ab", automata, grammars)
    capsys.readouterr()

    execute("to_dfa ends_ab_dfa", automata, grammars)
    assert "to_dfa needs an NFA" in capsys.readouterr().out


def test_grammar_commands(session, capsys):
    automata, grammars = session

    execute("minimize_grammar lang", automata, grammars)
    assert grammars["lang_min"].nonterminals == frozenset({"S", "A"})

    execute("to_nfa lang_min", automata, grammars)
    assert automata["lang_min_nfa"].accepts("abc")

    capsys.readouterr()
    execute("classify lang", automata, grammars)
    assert capsys.readouterr().out.strip() == "right-regular"


def test_empty_language_propagates():
    grammars = {"empty": Grammar.from_productions("S", {"S": {"aS"}})}
    with pytest.raises(EmptyLanguage):
        execute("minimize_grammar empty", {}, grammars)


def test_delete_and_clear(session, capsys):
    automata, grammars = session

    execute("delete lang", automata, grammars)
    assert "lang" not in grammars
    execute("delete lang", automata, grammars)
    assert "Not found: lang" in capsys.readouterr().out

    execute("clear", automata, grammars)
    assert automata == {} and grammars == {}


def test_unknown_command(capsys):
    assert execute("frobnicate", {}, {})
    assert "Unknown command: frobnicate" in capsys.readouterr().out


def test_exit():
    assert execute("exit", {}, {}) is False
    assert execute("quit", {}, {}) is False
    assert execute("", {}, {}) is True


def test_main_runs_commands(monkeypatch, tmp_path, capsys):
    path = tmp_path / "items.txt"
    path.write_text(NFA_FILE, encoding="utf-8")
    commands = iter(["to_dfa ends_ab", "test ends_ab_dfa ab", "exit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(commands))

    cli.main([str(path)])

    out = capsys.readouterr().out
    assert "Loaded 1 automata: ends_ab and 1 grammars: lang" in out
    assert "ACCEPTED" in out
    assert out.rstrip().endswith("Goodbye!")


def test_main_stops_on_eof(monkeypatch, capsys):
    def no_input(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", no_input)
    cli.main([])
    assert "Goodbye!" in capsys.readouterr().out
