from typing_extensions import Any, Iterable, Tuple

# Silent move marker in automata transitions (never a grammar symbol)
EPSILON = None

# Spellings accepted for epsilon in text input
EPSILON_NAMES = frozenset({"ε", "eps", "epsilon", "EPSILON", "λ", ""})

# Display form of epsilon
EPSILON_LABEL = "ε"


def sort_key(value: Any) -> Tuple:
    """
    Total ordering key over opaque values.

    Sets sort by their sorted members, tuples element-wise, everything
    else by type name first so mixed state types never compare directly.
    """
    if isinstance(value, (frozenset, set)):
        return (2, tuple(sorted(sort_key(v) for v in value)))
    if isinstance(value, tuple):
        return (1, tuple(sort_key(v) for v in value))
    if value is None:
        return (-1,)
    if isinstance(value, (int, str)):
        return (0, type(value).__name__, value)
    return (0, type(value).__name__, repr(value))


def canonical(values: Iterable[Any]) -> Tuple:
    return tuple(sorted(values, key=sort_key))


def state_label(state: Any) -> str:
    """Display label for a state; subsets and products are spelled out."""
    if isinstance(state, frozenset):
        if not state:
            return "∅"
        return "{" + ",".join(state_label(s) for s in canonical(state)) + "}"
    if isinstance(state, tuple):
        return "(" + ",".join(state_label(s) for s in state) + ")"
    if state is EPSILON:
        return EPSILON_LABEL
    return str(state)


def fresh_names(prefix: str, taken: Iterable[Any]):
    """Yield prefix0, prefix1, ... skipping anything in taken."""
    taken = set(taken)
    counter = 0
    while True:
        name = f"{prefix}{counter}"
        counter += 1
        if name not in taken:
            yield name
