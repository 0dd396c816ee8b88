class AutomataError(ValueError):
    """Base class for every error raised by the conversion core."""


class MalformedInput(AutomataError):
    """A grammar or automaton violates its structural invariants."""


class NotRegularGrammar(AutomataError):
    """A production body is not right-linear, so no NFA can be built."""

    def __init__(self, head, body):
        self.head = head
        self.body = tuple(body)
        rendered = " ".join(str(s) for s in self.body) or "ε"
        super().__init__(f"Production {head} -> {rendered} is not right-linear")


class EmptyLanguage(AutomataError):
    """The start symbol derives no terminal string."""

    def __init__(self, grammar):
        self.grammar = grammar
        super().__init__(
            f"Start symbol {grammar.start} is non-generating; the language is empty"
        )
