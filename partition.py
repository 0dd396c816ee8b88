from collections import defaultdict
from typing_extensions import Any, Callable, Dict, FrozenSet, Hashable, Iterable, Mapping, Tuple

from symbols import canonical

Block = FrozenSet[Any]
Partition = FrozenSet[Block]
Signature = Callable[[Any, Mapping[Any, Block]], Hashable]


def initial_partition(states: Iterable[Any], accepting: Iterable[Any]) -> Partition:
    """Split states into {accepting} and {non-accepting}, omitting an empty side."""
    states = frozenset(states)
    accepting_block = states & frozenset(accepting)
    rest = states - accepting_block
    return frozenset(block for block in (accepting_block, rest) if block)


def block_index(partition: Iterable[Block]) -> Dict[Any, Block]:
    """Map every state to the block containing it."""
    index = {}
    for block in partition:
        for state in block:
            index[state] = block
    return index


def split(block: Block, signature: Signature, block_of: Mapping[Any, Block]) -> Tuple[Block, ...]:
    groups = defaultdict(set)
    for state in block:
        groups[signature(state, block_of)].add(state)
    return tuple(frozenset(group) for group in groups.values())


def refine(partition: Iterable[Block], signature: Signature) -> Tuple[Partition, int]:
    """
    Moore-style partition refinement.

    Each round maps every state to its current block, then splits every block
    by the signature of its members. The loop stops after the first round in
    which no block splits. Returns the stable partition and the number of
    rounds that were run.
    """
    current = frozenset(partition)
    rounds = 0

    while True:
        rounds += 1
        block_of = block_index(current)

        refined = set()
        for block in current:
            refined.update(split(block, signature, block_of))

        refined = frozenset(refined)
        if refined == current:
            return current, rounds
        current = refined


def dfa_signature(transitions: Mapping[Tuple[Any, Any], Any], alphabet: Iterable[Any]) -> Signature:
    """
    Signature of a DFA state: the block reached on every symbol, in canonical
    symbol order. A missing transition lands in the shared dead sink (None).
    """
    symbols = canonical(alphabet)

    def signature(state, block_of):
        reached = []
        for symbol in symbols:
            target = transitions.get((state, symbol))
            reached.append(None if target is None else block_of[target])
        return tuple(reached)

    return signature
