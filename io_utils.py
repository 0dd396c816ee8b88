import logging
import os
import re
from collections import defaultdict
from typing_extensions import Dict, List, Optional, Set, Tuple, Union

from automaton import DFA, NFA
from errors import MalformedInput
from grammar import Grammar
from symbols import EPSILON, EPSILON_NAMES

logger = logging.getLogger(__name__)

Automaton = Union[NFA, DFA]

TYPE_NAMES = {
    "dfa": "dfa",
    "dea": "dfa",
    "nfa": "nfa",
    "nea": "nfa",
    "enfa": "nfa",
    "nfa-e": "nfa",
    "epsilon": "nfa",
}

# Keys of the automaton and grammar formats are never section names
RESERVED_KEYS = (
    "type", "alphabet", "states", "start", "accept",
    "START", "TERMINALS", "NONTERMINALS", "NON_TERMINALS",
)

NAME_PATTERN = re.compile(
    r"^(?!(?:%s):)([A-Za-z]\w*):[ \t]*$" % "|".join(RESERVED_KEYS), re.MULTILINE
)


# ---------------------------------------------------------------------------
# Automata
# ---------------------------------------------------------------------------


def _automaton_symbol(symbol: str, alphabet: Set[str]):
    # "e" means epsilon only when it is not a declared input symbol
    if symbol in EPSILON_NAMES or (symbol == "e" and symbol not in alphabet):
        return EPSILON
    return symbol


def parse_automaton(block: str) -> Automaton:
    """
    Parse one automaton description.

    Lines are "type:", "alphabet:", "states:", "start:", "accept:" and
    transitions written "q0 a q1" or "q0 -> a -> q1". Without a type line the
    result is a DFA when every (state, symbol) has at most one target and no
    epsilon move occurs, an NFA otherwise.
    """
    kind: Optional[str] = None
    alphabet: Set[str] = set()
    states: Set[str] = set()
    start: Optional[str] = None
    accepting: Set[str] = set()
    raw_transitions: List[Tuple[str, str, str]] = []

    for line in block.strip().split("\n"):
        line = line.strip()

        if not line or line.startswith("#"):
            continue
        elif line.startswith("type:"):
            t = line[5:].strip().lower()
            if t not in TYPE_NAMES:
                raise MalformedInput(f"Unknown automaton type: {t}")
            kind = TYPE_NAMES[t]
        elif line.startswith("alphabet:"):
            alphabet.update(line[9:].split())
        elif line.startswith("states:"):
            states.update(line[7:].split())
        elif line.startswith("start:"):
            start = line[6:].strip()
        elif line.startswith("accept:"):
            accepting.update(line[7:].split())
        elif "->" in line:
            parts = [p.strip() for p in line.split("->")]
            if len(parts) != 3:
                raise MalformedInput(f"Cannot read transition: {line}")
            raw_transitions.append((parts[0], parts[1], parts[2]))
        elif len(line.split()) == 3:
            src, symbol, tgt = line.split()
            raw_transitions.append((src, symbol, tgt))
        else:
            raise MalformedInput(f"Cannot read line: {line}")

    if start is None:
        raise MalformedInput("Automaton has no start state")

    if not states:
        states = {start} | accepting
        for src, _, tgt in raw_transitions:
            states.update((src, tgt))

    relation = defaultdict(set)
    for src, symbol, tgt in raw_transitions:
        relation[(src, _automaton_symbol(symbol, alphabet))].add(tgt)

    if not alphabet:
        # no alphabet line: take the symbols used by the transitions
        alphabet = {symbol for (_, symbol) in relation if symbol is not EPSILON}

    deterministic = all(
        symbol is not EPSILON and len(targets) == 1
        for (_, symbol), targets in relation.items()
    )
    if kind is None:
        kind = "dfa" if deterministic else "nfa"

    if kind == "dfa":
        if not deterministic:
            raise MalformedInput("DFA has epsilon moves or several targets for one symbol")
        return DFA(
            states=states,
            alphabet=alphabet,
            transitions={key: next(iter(targets)) for key, targets in relation.items()},
            start=start,
            accepting=accepting,
        )

    return NFA(
        states=states,
        alphabet=alphabet,
        transitions=relation,
        start=start,
        accepting=accepting,
    )


def load_automata(content: str) -> List[Automaton]:
    """Parse automaton blocks separated by '---'."""
    return [parse_automaton(block) for block in content.split("---") if block.strip()]


# ---------------------------------------------------------------------------
# Grammars
# ---------------------------------------------------------------------------


def _tokenize(rhs: str) -> List[str]:
    symbols = []
    i = 0
    while i < len(rhs):
        if rhs[i] == "<":
            end = rhs.index(">", i)
            symbols.append(rhs[i + 1 : end])
            i = end + 1
        elif rhs[i].isspace():
            i += 1
        else:
            symbols.append(rhs[i])
            i += 1
    return symbols


def _strip_brackets(symbol: str) -> str:
    if symbol.startswith("<") and symbol.endswith(">"):
        return symbol[1:-1]
    return symbol


def parse_grammar(content: str) -> Grammar:
    """
    Parse productions written "S -> aA | b".

    Single uppercase letters and production heads are nonterminals, every
    other symbol is a terminal, unless NONTERMINALS:/TERMINALS: lines say
    otherwise. <Name> spells a multi-character symbol. START: picks the
    start symbol, else S, else the first head.
    """
    specified_start = None
    declared_nonterminals: Optional[Set[str]] = None
    declared_terminals: Optional[Set[str]] = None
    productions: List[Tuple[str, str]] = []

    for line in content.strip().split("\n"):
        if "#" in line:
            line = line[: line.index("#")]
        line = line.strip()

        if not line:
            continue

        if line.startswith("START:"):
            specified_start = _strip_brackets(line.split(":", 1)[1].strip())
            continue
        if line.startswith("NONTERMINALS:") or line.startswith("NON_TERMINALS:"):
            declared_nonterminals = set(_tokenize(line.split(":", 1)[1].replace(",", " ")))
            continue
        if line.startswith("TERMINALS:"):
            declared_terminals = set(_tokenize(line.split(":", 1)[1].replace(",", " ")))
            continue

        line = line.replace("→", "->").replace("::=", "->")
        if "->" not in line:
            raise MalformedInput(f"Cannot read production: {line}")

        lhs, rhs_alternatives = line.split("->", 1)
        lhs = _strip_brackets(lhs.strip())
        for rhs in rhs_alternatives.split("|"):
            productions.append((lhs, rhs.strip()))

    if not productions:
        raise MalformedInput("No productions found")

    heads = [lhs for lhs, _ in productions]
    bodies: Dict[str, Set[Tuple[str, ...]]] = defaultdict(set)
    all_symbols: Set[str] = set()
    for lhs, rhs in productions:
        body = () if rhs in EPSILON_NAMES else tuple(_tokenize(rhs))
        bodies[lhs].add(body)
        all_symbols.update(body)

    if declared_nonterminals is not None:
        nonterminals = declared_nonterminals | set(heads)
    else:
        nonterminals = set(heads) | {
            s for s in all_symbols if len(s) == 1 and s.isupper()
        }

    if specified_start:
        start = specified_start
    elif "S" in nonterminals:
        start = "S"
    else:
        start = heads[0]
    nonterminals.add(start)

    if declared_terminals is not None:
        terminals = declared_terminals
    else:
        terminals = all_symbols - nonterminals

    return Grammar(nonterminals, terminals, start, bodies)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def detect_automaton(content: str) -> bool:
    lines = content.strip().split("\n")

    # Grammar headers are upper case (START:), automaton keys lower case
    automaton_keywords = ("type:", "states:", "alphabet:", "start:", "accept:")
    if any(line.strip().startswith(automaton_keywords) for line in lines):
        return True

    if "::=" in content:
        return False

    automaton_count = 0
    grammar_count = 0
    for line in lines:
        if "->" not in line and "→" not in line:
            continue
        parts = re.split(r"\s*->\s*|\s*→\s*", line.strip())
        if len(parts) == 3:
            automaton_count += 1
        elif len(parts) == 2:
            grammar_count += 1

    return automaton_count > grammar_count


def _load_section(
    name: str,
    definition: str,
    automata: Dict[str, Automaton],
    grammars: Dict[str, Grammar],
):
    if detect_automaton(definition):
        loaded = load_automata(definition)
        for idx, aut in enumerate(loaded):
            automata[f"{name}{idx if idx > 0 else ''}"] = aut
    else:
        grammars[name] = parse_grammar(definition)


def load_from_string(
    content: str, base_name: str = "item"
) -> Tuple[Dict[str, Automaton], Dict[str, Grammar]]:
    """
    Load automata and grammars. Named sections ("NAME:" on its own line) may
    mix both kinds; a section that fails to load is skipped with a warning.
    Text before the first named section loads under base_name.
    """
    automata: Dict[str, Automaton] = {}
    grammars: Dict[str, Grammar] = {}

    if NAME_PATTERN.search(content):
        sections = NAME_PATTERN.split(content)
        named = [(base_name, sections[0])]
        named += [(sections[i].strip(), sections[i + 1]) for i in range(1, len(sections) - 1, 2)]
        for name, definition in named:
            definition = definition.strip()
            if all(not line.strip() or line.strip().startswith("#") for line in definition.split("\n")):
                continue
            try:
                _load_section(name, definition, automata, grammars)
            except ValueError as e:
                logger.warning("Failed to load '%s': %s", name, e)
    else:
        _load_section(base_name, content, automata, grammars)

    return automata, grammars


def load_from_file(filename: str) -> Tuple[Dict[str, Automaton], Dict[str, Grammar]]:
    with open(filename, "r", encoding="utf-8") as f:
        content = f.read()

    base_name = os.path.basename(filename).rsplit(".", 1)[0]
    return load_from_string(content, base_name)
