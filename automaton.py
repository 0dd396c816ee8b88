import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing_extensions import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from graphviz import Digraph

from errors import MalformedInput
from partition import block_index, dfa_signature, initial_partition, refine
from symbols import EPSILON, EPSILON_LABEL, canonical, state_label

logger = logging.getLogger(__name__)

State = Any
Symbol = Any


def _check_structure(kind: str, states, alphabet, start, accepting):
    """Invariants shared by NFA and DFA."""
    if not states:
        raise MalformedInput(f"{kind} needs at least one state")
    if None in states:
        raise MalformedInput(f"{kind} state None is reserved for the dead sink")
    if EPSILON in alphabet:
        raise MalformedInput(f"{kind} alphabet must not contain epsilon")
    if start not in states:
        raise MalformedInput(f"{kind} start state {start!r} is not a state")
    stray = accepting - states
    if stray:
        raise MalformedInput(
            f"{kind} accepting states {sorted(map(state_label, stray))} are not states"
        )


def _as_target_set(targets) -> FrozenSet[State]:
    # A bare value (including a tuple state) means a single target
    if isinstance(targets, (set, frozenset, list)):
        return frozenset(targets)
    return frozenset({targets})


# -------------------------------------------------------------------------
# Visualization
# -------------------------------------------------------------------------


def _digraph(title: str, automaton, edges, filename: Optional[str], view: bool) -> Digraph:
    """Build a Graphviz drawing; edges maps (src, tgt) to a list of labels."""
    dot = Digraph(
        name=title,
        format="png",
        graph_attr={
            "rankdir": "LR",
            "splines": "true",
            "nodesep": "0.8",
            "ranksep": "1.2",
            "label": title,
            "labelloc": "t",
            "fontsize": "14",
            "fontname": "Arial",
        },
        node_attr={
            "shape": "circle",
            "fontsize": "14",
            "fontname": "Arial",
            "style": "filled",
            "fillcolor": "lightblue",
        },
        edge_attr={"fontsize": "12", "fontname": "Arial", "arrowsize": "0.8"},
    )

    state_to_id = {state: f"q{i}" for i, state in enumerate(canonical(automaton.states))}

    dot.node("__start__", shape="point", width="0.01", style="invis")

    for state in canonical(automaton.states):
        if state in automaton.accepting:
            dot.node(
                state_to_id[state],
                label=state_label(state),
                shape="doublecircle",
                fillcolor="lightgreen",
            )
        else:
            dot.node(state_to_id[state], label=state_label(state))

    dot.edge("__start__", state_to_id[automaton.start], penwidth="2")

    for (src, tgt) in canonical(edges):
        label = ", ".join(edges[(src, tgt)])
        if src == tgt:
            dot.edge(state_to_id[src], state_to_id[tgt], label=label, headport="n", tailport="n")
        else:
            dot.edge(state_to_id[src], state_to_id[tgt], label=label)

    if filename is not None:
        dot.render(filename, view=view, cleanup=True)
    return dot


def _describe(kind: str, automaton, lines: List[str]) -> str:
    result = f"{kind}\n"
    result += "  States: {" + ", ".join(state_label(s) for s in canonical(automaton.states)) + "}\n"
    result += "  Alphabet: {" + ", ".join(str(a) for a in canonical(automaton.alphabet)) + "}\n"
    result += f"  Start: {state_label(automaton.start)}\n"
    result += "  Accepting: {" + ", ".join(state_label(s) for s in canonical(automaton.accepting)) + "}\n"
    result += "  Transitions:\n"
    for line in lines:
        result += f"    {line}\n"
    return result


# -------------------------------------------------------------------------
# NFA
# -------------------------------------------------------------------------


@dataclass
class NFA:
    """
    Nondeterministic finite automaton with epsilon moves.

    transitions maps (state, symbol) to a set of target states; the symbol
    EPSILON marks a silent move. Inputs are copied on construction, so the
    caller's containers are never shared with the automaton.
    """

    states: FrozenSet[State]
    alphabet: FrozenSet[Symbol]
    transitions: Dict[Tuple[State, Optional[Symbol]], FrozenSet[State]]
    start: State
    accepting: FrozenSet[State] = field(default_factory=frozenset)

    def __post_init__(self):
        self.states = frozenset(self.states)
        self.alphabet = frozenset(self.alphabet)
        self.accepting = frozenset(self.accepting)

        transitions = {}
        for key, targets in dict(self.transitions).items():
            targets = _as_target_set(targets)
            if targets:
                transitions[key] = targets
        self.transitions = transitions

        _check_structure("NFA", self.states, self.alphabet, self.start, self.accepting)

        for (src, symbol), targets in self.transitions.items():
            if src not in self.states:
                raise MalformedInput(f"NFA transition from unknown state {src!r}")
            if symbol is not EPSILON and symbol not in self.alphabet:
                raise MalformedInput(f"NFA transition on {symbol!r} outside the alphabet")
            dangling = targets - self.states
            if dangling:
                raise MalformedInput(
                    f"NFA transition {src!r} --{symbol!r}--> unknown states "
                    f"{sorted(map(state_label, dangling))}"
                )

    # -------------------------------------------------------------------------
    # Transition helpers
    # -------------------------------------------------------------------------

    def targets(self, state: State, symbol: Optional[Symbol]) -> FrozenSet[State]:
        return self.transitions.get((state, symbol), frozenset())

    def epsilon_closure(self, states: Iterable[State]) -> FrozenSet[State]:
        """All states reachable from states through zero or more epsilon moves."""
        closure = set(states)
        stack = list(closure)
        while stack:
            s = stack.pop()
            for next_state in self.targets(s, EPSILON):
                if next_state not in closure:
                    closure.add(next_state)
                    stack.append(next_state)
        return frozenset(closure)

    def move(self, states: Iterable[State], symbol: Symbol) -> FrozenSet[State]:
        result = set()
        for s in states:
            result.update(self.targets(s, symbol))
        return frozenset(result)

    def accepts(self, word: Iterable[Symbol]) -> bool:
        current = self.epsilon_closure({self.start})
        for symbol in word:
            if symbol not in self.alphabet:
                return False
            current = self.epsilon_closure(self.move(current, symbol))
            if not current:
                return False
        return bool(current & self.accepting)

    # -------------------------------------------------------------------------
    # Conversions
    # -------------------------------------------------------------------------

    def to_DFA(self) -> "DFA":
        """
        Subset construction.

        Every DFA state is the frozenset of NFA states it stands for, so equal
        subsets found along different paths are the same DFA state. An empty
        target subset is left out and acts as the implicit dead sink.
        """
        symbols = canonical(self.alphabet)
        new_start = self.epsilon_closure({self.start})

        new_relation = {}
        discovered = {new_start}
        queue = deque([new_start])

        while queue:
            S = queue.popleft()
            for a in symbols:
                target = self.epsilon_closure(self.move(S, a))
                if not target:
                    continue
                new_relation[(S, a)] = target
                if target not in discovered:
                    discovered.add(target)
                    queue.append(target)

        accepting = frozenset(S for S in discovered if S & self.accepting)

        logger.debug(
            "Subset construction: %d NFA states -> %d DFA states",
            len(self.states),
            len(discovered),
        )

        return DFA(
            states=frozenset(discovered),
            alphabet=self.alphabet,
            transitions=new_relation,
            start=new_start,
            accepting=accepting,
        )

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def _transition_lines(self) -> List[str]:
        lines = []
        for (src, symbol) in canonical(self.transitions):
            targets = ", ".join(state_label(t) for t in canonical(self.transitions[(src, symbol)]))
            sym_label = EPSILON_LABEL if symbol is EPSILON else str(symbol)
            lines.append(f"{state_label(src)} --{sym_label}--> {{{targets}}}")
        return lines

    def __str__(self):
        return _describe("NFA", self, self._transition_lines())

    def to_graphviz(self, filename: Optional[str] = None, view: bool = False) -> Digraph:
        edges = defaultdict(list)
        for (src, symbol) in canonical(self.transitions):
            for tgt in self.transitions[(src, symbol)]:
                edges[(src, tgt)].append(EPSILON_LABEL if symbol is EPSILON else str(symbol))
        return _digraph("NFA", self, edges, filename, view)


# -------------------------------------------------------------------------
# DFA
# -------------------------------------------------------------------------


@dataclass
class DFA:
    """
    Deterministic finite automaton with a possibly partial transition map.

    A missing (state, symbol) entry goes to an implicit dead sink that
    rejects every continuation.
    """

    states: FrozenSet[State]
    alphabet: FrozenSet[Symbol]
    transitions: Dict[Tuple[State, Symbol], State]
    start: State
    accepting: FrozenSet[State] = field(default_factory=frozenset)

    def __post_init__(self):
        self.states = frozenset(self.states)
        self.alphabet = frozenset(self.alphabet)
        self.accepting = frozenset(self.accepting)
        self.transitions = dict(self.transitions)

        _check_structure("DFA", self.states, self.alphabet, self.start, self.accepting)

        for (src, symbol), target in self.transitions.items():
            if src not in self.states:
                raise MalformedInput(f"DFA transition from unknown state {src!r}")
            if symbol is EPSILON:
                raise MalformedInput(f"DFA transition from {src!r} on epsilon")
            if symbol not in self.alphabet:
                raise MalformedInput(f"DFA transition on {symbol!r} outside the alphabet")
            if target not in self.states:
                raise MalformedInput(
                    f"DFA transition {src!r} --{symbol}--> unknown state {target!r}"
                )

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    def step(self, state: State, symbol: Symbol) -> Optional[State]:
        """Next state, or None when the move falls into the dead sink."""
        return self.transitions.get((state, symbol))

    def accepts(self, word: Iterable[Symbol]) -> bool:
        state = self.start
        for symbol in word:
            state = self.step(state, symbol)
            if state is None:
                return False
        return state in self.accepting

    # -------------------------------------------------------------------------
    # Reachability
    # -------------------------------------------------------------------------

    def reachable_states(self) -> FrozenSet[State]:
        symbols = canonical(self.alphabet)
        reachable = {self.start}
        queue = deque([self.start])
        while queue:
            state = queue.popleft()
            for symbol in symbols:
                target = self.step(state, symbol)
                if target is not None and target not in reachable:
                    reachable.add(target)
                    queue.append(target)
        return frozenset(reachable)

    def coreachable_states(self) -> FrozenSet[State]:
        """States from which some accepting state can still be reached."""
        predecessors = defaultdict(set)
        for (src, _), tgt in self.transitions.items():
            predecessors[tgt].add(src)

        alive = set(self.accepting)
        stack = list(alive)
        while stack:
            state = stack.pop()
            for src in predecessors[state]:
                if src not in alive:
                    alive.add(src)
                    stack.append(src)
        return frozenset(alive)

    def has_unreachable_states(self) -> bool:
        return len(self.reachable_states()) != len(self.states)

    def _restrict(self, keep: FrozenSet[State], targets: Optional[FrozenSet[State]] = None) -> "DFA":
        # Transitions must end in targets (default: keep); others fall into the sink
        if targets is None:
            targets = keep
        return DFA(
            states=keep,
            alphabet=self.alphabet,
            transitions={
                (src, symbol): tgt
                for (src, symbol), tgt in self.transitions.items()
                if src in keep and tgt in targets
            },
            start=self.start,
            accepting=self.accepting & keep,
        )

    def remove_unreachable_states(self) -> "DFA":
        return self._restrict(self.reachable_states())

    def trim(self) -> "DFA":
        """
        Keep only states that are reachable and can still reach acceptance.

        The start state always survives, but when it cannot reach acceptance
        it keeps no transitions. Transitions into dropped or dead states are
        removed and fall into the dead sink instead.
        """
        alive = self.reachable_states() & self.coreachable_states()
        return self._restrict(frozenset(alive | {self.start}), targets=alive)

    # -------------------------------------------------------------------------
    # Minimization
    # -------------------------------------------------------------------------

    def compute_equivalence_classes(self) -> FrozenSet[FrozenSet[State]]:
        """Equivalence classes of the trimmed automaton by partition refinement."""
        trimmed = self.trim()
        classes, _ = self._refine(trimmed)
        return classes

    @staticmethod
    def _refine(trimmed: "DFA"):
        partition = initial_partition(trimmed.states, trimmed.accepting)
        return refine(partition, dfa_signature(trimmed.transitions, trimmed.alphabet))

    def minimize(self) -> "DFA":
        """
        Minimize by partition refinement.

        Unreachable and dead states are dropped first; dead states are
        equivalent to the implicit sink and would otherwise survive as a
        separate block. Each remaining block of equivalent states becomes one
        state, identified by the frozenset of its members.
        """
        trimmed = self.trim()
        equiv_classes, rounds = self._refine(trimmed)
        state_to_class = block_index(equiv_classes)

        new_relation = {}
        for eq_class in equiv_classes:
            # All members agree on target blocks, any of them will do
            representative = canonical(eq_class)[0]
            for symbol in trimmed.alphabet:
                next_state = trimmed.step(representative, symbol)
                if next_state is not None:
                    new_relation[(eq_class, symbol)] = state_to_class[next_state]

        new_accepting = frozenset(
            eq_class for eq_class in equiv_classes if eq_class <= trimmed.accepting
        )

        logger.debug(
            "Minimized DFA: %d states -> %d states in %d refinement rounds",
            len(self.states),
            len(equiv_classes),
            rounds,
        )

        return DFA(
            states=equiv_classes,
            alphabet=self.alphabet,
            transitions=new_relation,
            start=state_to_class[self.start],
            accepting=new_accepting,
        )

    # -------------------------------------------------------------------------
    # Conversions
    # -------------------------------------------------------------------------

    def to_NFA(self) -> NFA:
        """Embed the DFA as an NFA with singleton target sets."""
        return NFA(
            states=self.states,
            alphabet=self.alphabet,
            transitions={key: frozenset({tgt}) for key, tgt in self.transitions.items()},
            start=self.start,
            accepting=self.accepting,
        )

    def relabel(self, prefix: str = "q") -> "DFA":
        """
        Rename states to prefix0, prefix1, ... in breadth-first order from the
        start state. Unreachable states are numbered last, in canonical order.
        """
        symbols = canonical(self.alphabet)
        order = [self.start]
        seen = {self.start}
        queue = deque([self.start])
        while queue:
            state = queue.popleft()
            for symbol in symbols:
                target = self.step(state, symbol)
                if target is not None and target not in seen:
                    seen.add(target)
                    order.append(target)
                    queue.append(target)
        order.extend(s for s in canonical(self.states) if s not in seen)

        names = {state: f"{prefix}{i}" for i, state in enumerate(order)}
        return DFA(
            states=frozenset(names.values()),
            alphabet=self.alphabet,
            transitions={
                (names[src], symbol): names[tgt]
                for (src, symbol), tgt in self.transitions.items()
            },
            start=names[self.start],
            accepting=frozenset(names[s] for s in self.accepting),
        )

    def is_isomorphic(self, other: "DFA") -> bool:
        """Whether the reachable parts are equal up to renaming of states."""
        if self.alphabet != other.alphabet:
            return False

        symbols = canonical(self.alphabet)
        mapping = {self.start: other.start}
        inverse = {other.start: self.start}
        queue = deque([(self.start, other.start)])

        while queue:
            a, b = queue.popleft()
            if (a in self.accepting) != (b in other.accepting):
                return False
            for symbol in symbols:
                ta = self.step(a, symbol)
                tb = other.step(b, symbol)
                if (ta is None) != (tb is None):
                    return False
                if ta is None:
                    continue
                if ta in mapping or tb in inverse:
                    if mapping.get(ta) != tb or inverse.get(tb) != ta:
                        return False
                    continue
                mapping[ta] = tb
                inverse[tb] = ta
                queue.append((ta, tb))

        return True

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def _transition_lines(self) -> List[str]:
        return [
            f"{state_label(src)} --{symbol}--> {state_label(self.transitions[(src, symbol)])}"
            for (src, symbol) in canonical(self.transitions)
        ]

    def __str__(self):
        return _describe("DFA", self, self._transition_lines())

    def to_graphviz(self, filename: Optional[str] = None, view: bool = False) -> Digraph:
        edges = defaultdict(list)
        for (src, symbol) in canonical(self.transitions):
            edges[(src, self.transitions[(src, symbol)])].append(str(symbol))
        return _digraph("DFA", self, edges, filename, view)
