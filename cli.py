import argparse
import logging
from typing_extensions import Callable, Dict, List, Optional

from automaton import DFA, NFA
from grammar import Grammar
from io_utils import Automaton, load_from_file

HELP = """
Commands:
  LOADING:
    load <file>                      - Load automata/grammars from file
    list                             - List all loaded items

  AUTOMATA OPERATIONS:
    show <name>                      - Show automaton
    graph <name>                     - Render automaton with Graphviz
    test <name> <word>               - Test if word is accepted
    test <name> <sym> <sym> ...      - Same, for multi-character symbols

    TRANSFORMATIONS:
      to_dfa <name> [result]         - NFA -> DFA (subset construction)
      minimize <name> [result]       - Minimize DFA
      relabel <name> [result]        - Rename DFA states q0, q1, ...
      to_nfa <name> [result]         - DFA -> NFA, or right-linear grammar -> NFA

  GRAMMAR OPERATIONS:
    show_grammar <name>              - Show grammar
    classify <name>                  - Show grammar type
    remove_nongen <name> [res]       - Remove non-generating symbols
    remove_unreach <name> [res]      - Remove unreachable symbols
    remove_unit <name> [res]         - Remove unit productions
    remove_epsilon <name> [res]      - Remove epsilon productions
    minimize_grammar <name> [res]    - Remove useless symbols and unit productions

  GENERAL:
    delete <name>                    - Delete item
    clear                            - Clear all
    exit                             - Exit
"""

TYPE_NAMES = {DFA: "DFA", NFA: "NFA"}


def _result_name(parts: List[str], suffix: str) -> str:
    return parts[2] if len(parts) > 2 else f"{parts[1]}_{suffix}"


def _load(filename: str, automata: Dict[str, Automaton], grammars: Dict[str, Grammar]):
    loaded_automata, loaded_grammars = load_from_file(filename)
    automata.update(loaded_automata)
    grammars.update(loaded_grammars)

    if loaded_automata or loaded_grammars:
        msg = []
        if loaded_automata:
            msg.append(f"{len(loaded_automata)} automata: {', '.join(loaded_automata.keys())}")
        if loaded_grammars:
            msg.append(f"{len(loaded_grammars)} grammars: {', '.join(loaded_grammars.keys())}")
        print(f"Loaded {' and '.join(msg)}")
    else:
        print("No items loaded")


def _grammar_transform(
    parts: List[str],
    grammars: Dict[str, Grammar],
    suffix: str,
    transform: Callable[[Grammar], Grammar],
):
    if len(parts) < 2:
        print(f"Usage: {parts[0]} <name> [result]")
    elif parts[1] not in grammars:
        print(f"Grammar not found: {parts[1]}")
    else:
        result_name = _result_name(parts, suffix)
        grammars[result_name] = transform(grammars[parts[1]])
        print(f"Created: {result_name}")


def execute(command: str, automata: Dict[str, Automaton], grammars: Dict[str, Grammar]) -> bool:
    """Run one command. Returns False when the session should end."""
    parts = command.split()
    if not parts:
        return True
    cmd = parts[0].lower()

    # Exit
    if cmd in ["exit", "quit"]:
        return False

    elif cmd == "help":
        print(HELP)

    elif cmd == "load":
        if len(parts) < 2:
            print("Usage: load <filename>")
        else:
            _load(parts[1], automata, grammars)

    elif cmd == "list":
        if automata or grammars:
            if automata:
                print("Automata:")
                for name, aut in sorted(automata.items()):
                    print(f"  {name}: {TYPE_NAMES[type(aut)]}, {len(aut.states)} states")
            if grammars:
                print("Grammars:")
                for name, gram in sorted(grammars.items()):
                    print(
                        f"  {name}: {gram.classify().value}, "
                        f"{len(gram.nonterminals)} non-terminals, "
                        f"{sum(1 for _ in gram.rules())} productions"
                    )
        else:
            print("Nothing loaded")

    elif cmd == "show":
        if len(parts) < 2:
            print("Usage: show <name>")
        elif parts[1] not in automata:
            print(f"Automaton not found: {parts[1]}")
        else:
            print(f"\n{parts[1]}: {automata[parts[1]]}")

    elif cmd == "show_grammar":
        if len(parts) < 2:
            print("Usage: show_grammar <name>")
        elif parts[1] not in grammars:
            print(f"Grammar not found: {parts[1]}")
        else:
            print(grammars[parts[1]])

    elif cmd == "classify":
        if len(parts) < 2:
            print("Usage: classify <name>")
        elif parts[1] not in grammars:
            print(f"Grammar not found: {parts[1]}")
        else:
            print(grammars[parts[1]].classify().value)

    elif cmd == "graph":
        if len(parts) < 2:
            print("Usage: graph <name>")
        elif parts[1] not in automata:
            print(f"Automaton not found: {parts[1]}")
        else:
            automata[parts[1]].to_graphviz(filename=parts[1], view=True)
            print(f"Created: {parts[1]}.png")

    elif cmd == "test":
        if len(parts) < 2:
            print("Usage: test <name> [word]")
        elif parts[1] not in automata:
            print(f"Automaton not found: {parts[1]}")
        else:
            aut = automata[parts[1]]
            if any(len(str(symbol)) != 1 for symbol in aut.alphabet):
                # multi-character symbols are given separated by spaces
                word = parts[2:]
            else:
                word = parts[2] if len(parts) > 2 else ""
            print("ACCEPTED" if aut.accepts(word) else "REJECTED")

    elif cmd == "to_dfa":
        if len(parts) < 2:
            print("Usage: to_dfa <name> [result]")
        elif parts[1] not in automata:
            print(f"Automaton not found: {parts[1]}")
        elif not isinstance(automata[parts[1]], NFA):
            print("to_dfa needs an NFA")
        else:
            result_name = _result_name(parts, "dfa")
            automata[result_name] = automata[parts[1]].to_DFA()
            print(f"Created: {result_name}")

    elif cmd in ["minimize", "relabel"]:
        if len(parts) < 2:
            print(f"Usage: {cmd} <name> [result]")
        elif parts[1] not in automata:
            print(f"Automaton not found: {parts[1]}")
        elif not isinstance(automata[parts[1]], DFA):
            print(f"{cmd} needs a DFA")
        else:
            aut = automata[parts[1]]
            result_name = _result_name(parts, "min" if cmd == "minimize" else "relabeled")
            automata[result_name] = aut.minimize() if cmd == "minimize" else aut.relabel()
            print(f"Created: {result_name}")

    elif cmd == "to_nfa":
        if len(parts) < 2:
            print("Usage: to_nfa <name> [result]")
        elif parts[1] in automata:
            if not isinstance(automata[parts[1]], DFA):
                print("to_nfa needs a DFA or a grammar")
            else:
                result_name = _result_name(parts, "nfa")
                automata[result_name] = automata[parts[1]].to_NFA()
                print(f"Created: {result_name}")
        elif parts[1] in grammars:
            result_name = _result_name(parts, "nfa")
            automata[result_name] = grammars[parts[1]].to_NFA()
            print(f"Created automaton: {result_name}")
        else:
            print(f"Not found: {parts[1]}")

    elif cmd == "remove_nongen":
        _grammar_transform(parts, grammars, "gen", Grammar.remove_non_generating_symbols)

    elif cmd == "remove_unreach":
        _grammar_transform(parts, grammars, "reach", Grammar.remove_unreachable_symbols)

    elif cmd == "remove_unit":
        _grammar_transform(parts, grammars, "no_unit", Grammar.remove_unit_productions)

    elif cmd == "remove_epsilon":
        _grammar_transform(parts, grammars, "no_eps", Grammar.remove_epsilon_productions)

    elif cmd == "minimize_grammar":
        _grammar_transform(parts, grammars, "min", Grammar.minimize)

    elif cmd == "delete":
        if len(parts) < 2:
            print("Usage: delete <name>")
        else:
            deleted = automata.pop(parts[1], None) is not None
            deleted = grammars.pop(parts[1], None) is not None or deleted
            print(f"Deleted: {parts[1]}" if deleted else f"Not found: {parts[1]}")

    elif cmd == "clear":
        automata.clear()
        grammars.clear()
        print("Cleared all")

    else:
        print(f"Unknown command: {cmd}")

    return True


def main(argv: Optional[List[str]] = None):
    """Simple interactive terminal for automaton and grammar operations."""
    parser = argparse.ArgumentParser(description="Automata and grammar terminal")
    parser.add_argument("files", nargs="*", help="files to load on start")
    parser.add_argument("-v", "--verbose", action="store_true", help="log conversion details")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    automata: Dict[str, Automaton] = {}
    grammars: Dict[str, Grammar] = {}

    for filename in args.files:
        try:
            _load(filename, automata, grammars)
        except (OSError, ValueError) as e:
            print(f"Error: {e}")

    print("Automaton & Grammar Terminal - Type 'help' for commands\n")

    while True:
        try:
            if not execute(input("> ").strip(), automata, grammars):
                break
        except KeyboardInterrupt:
            print("\nUse 'exit' to quit")
        except EOFError:
            break
        except Exception as e:
            print(f"Error: {e}")

    print("Goodbye!")


if __name__ == "__main__":
    main()
