import logging
from collections import defaultdict, deque
from enum import Enum
from itertools import product
from typing_extensions import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from automaton import DFA, NFA
from errors import EmptyLanguage, MalformedInput, NotRegularGrammar
from symbols import EPSILON, EPSILON_LABEL, EPSILON_NAMES, canonical, fresh_names

logger = logging.getLogger(__name__)

Symbol = Any
Body = Tuple[Symbol, ...]

DEFAULT_FINAL_STATE = "F"


class GrammarType(Enum):
    CONTEXT_FREE = "context-free"  # A -> α
    RIGHT_REGULAR = "right-regular"  # A -> wB | w
    LEFT_REGULAR = "left-regular"  # A -> Bw | w


def _as_body(body, symbols) -> Body:
    # "aA" is a sequence of one-character symbols, "ε" is the empty body
    if isinstance(body, str):
        if body in symbols:
            return (body,)
        if body in EPSILON_NAMES:
            return ()
        return tuple(body)
    return tuple(body)


def _as_bodies(head, bodies) -> Iterable:
    if isinstance(bodies, str):
        raise MalformedInput(
            f"Bodies of {head!r} must be a collection of bodies, not the string {bodies!r}"
        )
    return bodies


class Grammar:
    """
    Context-free grammar.

    productions maps a nonterminal to its set of bodies; a body is a tuple of
    symbols and () is the ε-body. Terminals and nonterminals are told apart
    by membership in the two (disjoint) symbol sets. A Grammar is never
    modified after construction, every transformation returns a new one.

    A body may also be given as a string. A string naming a declared symbol
    is that one symbol, an epsilon spelling is the ε-body, and any other
    string is split into one-character symbols ("aA" -> ('a', 'A')). Use
    tuples for bodies with multi-character symbols. The bodies of a head
    must be a collection; a bare string raises MalformedInput.
    """

    def __init__(
        self,
        nonterminals: Iterable[Symbol],
        terminals: Iterable[Symbol],
        start: Symbol,
        productions: Dict[Symbol, Iterable],
    ):
        self.nonterminals: FrozenSet[Symbol] = frozenset(nonterminals)
        self.terminals: FrozenSet[Symbol] = frozenset(terminals)
        self.start: Symbol = start

        symbols = self.nonterminals | self.terminals
        self.productions: Dict[Symbol, FrozenSet[Body]] = {}
        for head, bodies in dict(productions).items():
            bodies = frozenset(_as_body(body, symbols) for body in _as_bodies(head, bodies))
            if bodies:
                self.productions[head] = bodies

        self._validate()

    def _validate(self):
        if not self.nonterminals:
            raise MalformedInput("Grammar needs at least one nonterminal")
        if EPSILON in self.nonterminals or EPSILON in self.terminals:
            raise MalformedInput("Epsilon is not a grammar symbol")

        overlap = self.nonterminals & self.terminals
        if overlap:
            raise MalformedInput(
                f"Symbols {list(canonical(overlap))} are both terminal and nonterminal"
            )
        if self.start not in self.nonterminals:
            raise MalformedInput(f"Start symbol {self.start!r} is not a nonterminal")

        symbols = self.nonterminals | self.terminals
        for head, bodies in self.productions.items():
            if head not in self.nonterminals:
                raise MalformedInput(f"Production head {head!r} is not a nonterminal")
            for body in bodies:
                unknown = [s for s in body if s not in symbols]
                if unknown:
                    raise MalformedInput(
                        f"Production {head} -> {self._body_str(body)} uses unknown symbols {unknown}"
                    )

    @classmethod
    def from_productions(
        cls,
        start: Symbol,
        productions: Dict[Symbol, Iterable],
        terminals: Optional[Iterable[Symbol]] = None,
    ) -> "Grammar":
        """
        Build a grammar whose nonterminals are the production heads plus the
        start symbol. Every other body symbol is a terminal unless terminals
        is given explicitly.
        """
        nonterminals = set(productions) | {start}
        if terminals is None:
            terminals = set()
            for head, bodies in productions.items():
                for body in _as_bodies(head, bodies):
                    terminals.update(
                        s for s in _as_body(body, nonterminals) if s not in nonterminals
                    )
        return cls(nonterminals, terminals, start, productions)

    # ------------------------------------------------------------------ #
    # Introspection / pretty-printing
    # ------------------------------------------------------------------ #

    def rules(self) -> Iterator[Tuple[Symbol, Body]]:
        """(head, body) pairs in canonical order."""
        for head in canonical(self.productions):
            for body in canonical(self.productions[head]):
                yield head, body

    def _body_str(self, body: Body) -> str:
        if not body:
            return EPSILON_LABEL
        separator = "" if all(len(str(s)) == 1 for s in body) else " "
        return separator.join(str(s) for s in body)

    def __str__(self):
        result = f"Grammar Type: {self.classify().value}\n"
        result += f"  Non-terminals: {{{', '.join(str(s) for s in canonical(self.nonterminals))}}}\n"
        result += f"  Terminals: {{{', '.join(str(s) for s in canonical(self.terminals))}}}\n"
        result += f"  Start symbol: {self.start}\n"
        result += "  Productions:\n"

        for head in canonical(self.productions):
            bodies = [self._body_str(b) for b in canonical(self.productions[head])]
            result += f"    {head} -> {' | '.join(bodies)}\n"

        return result

    def __repr__(self):
        return (
            f"Grammar(start={self.start!r}, nonterminals={len(self.nonterminals)}, "
            f"terminals={len(self.terminals)}, productions={sum(1 for _ in self.rules())})"
        )

    def __eq__(self, other):
        if not isinstance(other, Grammar):
            return NotImplemented
        return (
            self.nonterminals == other.nonterminals
            and self.terminals == other.terminals
            and self.start == other.start
            and self.productions == other.productions
        )

    def __hash__(self):
        return hash(
            (self.nonterminals, self.terminals, self.start, frozenset(self.productions.items()))
        )

    # ------------------------------------------------------------------ #
    # Type detection
    # ------------------------------------------------------------------ #

    def _is_right_linear(self, body: Body) -> bool:
        return not any(s in self.nonterminals for s in body[:-1])

    def _is_left_linear(self, body: Body) -> bool:
        return not any(s in self.nonterminals for s in body[1:])

    def classify(self) -> GrammarType:
        bodies = [body for _, body in self.rules()]
        if all(self._is_right_linear(body) for body in bodies):
            return GrammarType.RIGHT_REGULAR
        if all(self._is_left_linear(body) for body in bodies):
            return GrammarType.LEFT_REGULAR
        return GrammarType.CONTEXT_FREE

    # ------------------------------------------------------------------ #
    # Useless symbols
    # ------------------------------------------------------------------ #

    def reachable_symbols(self) -> FrozenSet[Symbol]:
        """Terminals and nonterminals that occur in some derivation from start."""
        reachable = {self.start}
        queue = deque([self.start])

        while queue:
            current = queue.popleft()
            for body in self.productions.get(current, ()):
                for symbol in body:
                    if symbol not in reachable:
                        reachable.add(symbol)
                        if symbol in self.nonterminals:
                            queue.append(symbol)

        return frozenset(reachable)

    def remove_unreachable_symbols(self) -> "Grammar":
        reachable = self.reachable_symbols()
        removed = self.nonterminals - reachable
        if removed:
            logger.debug("Unreachable nonterminals: %s", list(canonical(removed)))

        return Grammar(
            self.nonterminals & reachable,
            self.terminals & reachable,
            self.start,
            {head: bodies for head, bodies in self.productions.items() if head in reachable},
        )

    def generating_symbols(self) -> FrozenSet[Symbol]:
        """
        Nonterminals that derive some terminal string.

        A nonterminal is generating once one of its bodies consists only of
        terminals and generating nonterminals; the ε-body qualifies at once.
        Iterates to a fixpoint.
        """
        generating = set()
        changed = True

        while changed:
            changed = False
            for head, bodies in self.productions.items():
                if head in generating:
                    continue
                if any(self._all_generating(body, generating) for body in bodies):
                    generating.add(head)
                    changed = True

        return frozenset(generating)

    def _all_generating(self, body: Body, generating) -> bool:
        return all(s in self.terminals or s in generating for s in body)

    def language_is_empty(self) -> bool:
        return self.start not in self.generating_symbols()

    def remove_non_generating_symbols(self) -> "Grammar":
        generating = self.generating_symbols()
        if self.start not in generating:
            raise EmptyLanguage(self)

        removed = self.nonterminals - generating
        if removed:
            logger.debug("Non-generating nonterminals: %s", list(canonical(removed)))

        productions = {
            head: [body for body in bodies if self._all_generating(body, generating)]
            for head, bodies in self.productions.items()
            if head in generating
        }
        return Grammar(generating, self.terminals, self.start, productions)

    # ------------------------------------------------------------------ #
    # Unit productions
    # ------------------------------------------------------------------ #

    def _is_unit(self, body: Body) -> bool:
        return len(body) == 1 and body[0] in self.nonterminals

    def unit_pairs(self) -> FrozenSet[Tuple[Symbol, Symbol]]:
        """Pairs (A, B) with A =>* B using unit productions only, (A, A) included."""
        pairs = {(nt, nt) for nt in self.nonterminals}
        queue = deque(pairs)

        while queue:
            a, b = queue.popleft()
            for body in self.productions.get(b, ()):
                if self._is_unit(body) and (a, body[0]) not in pairs:
                    pairs.add((a, body[0]))
                    queue.append((a, body[0]))

        return frozenset(pairs)

    def remove_unit_productions(self) -> "Grammar":
        productions = defaultdict(set)
        for a, b in self.unit_pairs():
            for body in self.productions.get(b, ()):
                if not self._is_unit(body):
                    productions[a].add(body)

        return Grammar(self.nonterminals, self.terminals, self.start, productions)

    # ------------------------------------------------------------------ #
    # Epsilon productions
    # ------------------------------------------------------------------ #

    def nullable_symbols(self) -> FrozenSet[Symbol]:
        nullable = set()
        changed = True

        while changed:
            changed = False
            for head, bodies in self.productions.items():
                if head in nullable:
                    continue
                if any(all(s in nullable for s in body) for body in bodies):
                    nullable.add(head)
                    changed = True

        return frozenset(nullable)

    def remove_epsilon_productions(self) -> "Grammar":
        """
        Drop every ε-body, adding the variants of each body with any subset of
        its nullable symbols left out. A nullable start symbol gets a fresh
        start S0 -> S | ε so the empty word stays in the language.
        """
        nullable = self.nullable_symbols()

        productions = defaultdict(set)
        for head, body in self.rules():
            options = [((s,), ()) if s in nullable else ((s,),) for s in body]
            for choice in product(*options):
                new_body = tuple(s for part in choice for s in part)
                if new_body:
                    productions[head].add(new_body)

        nonterminals = set(self.nonterminals)
        start = self.start

        if self.start in nullable:
            start = next(fresh_names(str(self.start), self.nonterminals | self.terminals))
            nonterminals.add(start)
            productions[start].update({(self.start,), ()})

        return Grammar(nonterminals, self.terminals, start, productions)

    # ------------------------------------------------------------------ #
    # Minimization
    # ------------------------------------------------------------------ #

    def minimize(self) -> "Grammar":
        """
        Remove useless symbols and unit productions.

        Order: non-generating, unreachable, unit productions, unreachable
        again, since inlining unit productions can cut nonterminals off from
        the start symbol. Raises EmptyLanguage when the start symbol is
        non-generating, which includes a start symbol without productions.
        """
        g1 = self.remove_non_generating_symbols()
        g2 = g1.remove_unreachable_symbols()
        g3 = g2.remove_unit_productions()
        g4 = g3.remove_unreachable_symbols()

        logger.debug(
            "Minimized grammar: %d -> %d nonterminals",
            len(self.nonterminals),
            len(g4.nonterminals),
        )
        return g4

    # ------------------------------------------------------------------ #
    # Automaton conversion
    # ------------------------------------------------------------------ #

    def to_NFA(self, final_state: str = DEFAULT_FINAL_STATE) -> NFA:
        """
        Convert a right-linear grammar to an NFA.

        Each nonterminal is a state. A -> t1..tk B becomes a chain of fresh
        states from A to B, A -> t1..tk a chain from A to the accepting final
        state, A -> B an epsilon move and A -> ε makes A accepting.
        """
        taken = set(self.nonterminals)
        final = final_state
        if final in taken:
            final = next(fresh_names(final_state, taken))
        taken.add(final)
        names = fresh_names("q", taken)

        states = set(self.nonterminals) | {final}
        relation: Dict[Tuple[Any, Any], set] = defaultdict(set)
        accepting = {final}

        for head, body in self.rules():
            if not body:
                accepting.add(head)
                continue

            if not self._is_right_linear(body):
                raise NotRegularGrammar(head, body)

            if body[-1] in self.nonterminals:
                word: List[Symbol] = list(body[:-1])
                target = body[-1]
            else:
                word = list(body)
                target = final

            if not word:
                relation[(head, EPSILON)].add(target)
                continue

            current = head
            for symbol in word[:-1]:
                intermediate = next(names)
                states.add(intermediate)
                relation[(current, symbol)].add(intermediate)
                current = intermediate
            relation[(current, word[-1])].add(target)

        nfa = NFA(
            states=frozenset(states),
            alphabet=self.terminals,
            transitions=relation,
            start=self.start,
            accepting=frozenset(accepting),
        )
        logger.debug("Grammar -> NFA: %d states", len(nfa.states))
        return nfa

    def to_DFA(self) -> DFA:
        return self.to_NFA().to_DFA()
