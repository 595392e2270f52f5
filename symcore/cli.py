#!/usr/bin/env python3
"""
symcore command-line interface.

Provides interactive REPL, script execution, and pipe/filter modes.

Usage:
    symcore                              # Start REPL
    symcore script.sym                   # Run script
    symcore -e "x + x"                   # Simplify one expression
    symcore -s x -e "2 * x + 5 = 15"     # Solve one equation for x
    symcore -r extra.rules               # REPL with extra rules loaded
    echo "y * 0" | symcore               # Filter mode

Script format (one statement per line):
    # comment
    :load trig.rules
    @double: ?x + ?x => 2 * ?x
    x + x
    :solve x 2 * x + 5 = 15

REPL commands:
    :help                Show help
    :load FILE           Load rules from file
    :rules               List loaded rules
    :clear               Remove all rules
    :reset               Restore the built-in rules
    :trace on|off        Toggle tracing
    :iterations N        Set the rewrite pass cap
    :groups              Show groups
    :enable GROUP        Enable group
    :disable GROUP       Disable group
    :solve VAR EQUATION  Solve an equation
    :diff VAR EXPR       Differentiate
    :int VAR EXPR        Integrate
    :quit                Exit
"""

import argparse
import glob
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__, config
from .engine import SymEngine, load_rules_from_dsl
from .errors import SymcoreError
from .formatter import format_expr
from .logging_config import get_logger, setup_logging
from .strategies import SolveResult

logger = get_logger("cli")

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False


class SymcoreCompleter:
    """Tab completer for the symcore REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":load", ":rules", ":clear", ":reset",
        ":trace", ":iterations",
        ":groups", ":enable", ":disable",
        ":solve", ":diff", ":int",
    ]

    TRACE_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'SymcoreREPL'):
        self.repl = repl
        self.matches: List[str] = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> List[str]:
        line = line.lstrip()

        if line.startswith(":trace "):
            return [t for t in self.TRACE_OPTIONS if t.startswith(text)]

        if line.startswith(":enable ") or line.startswith(":disable "):
            return sorted(g for g in self.repl.engine.groups() if g.startswith(text))

        if line.startswith(":load "):
            return self._complete_path(text)

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        return []

    @staticmethod
    def _complete_path(text: str) -> List[str]:
        matches = []
        for path in glob.glob((text or "./") + "*"):
            matches.append(path + "/" if Path(path).is_dir() else path)
        return matches


def count_parens(text: str) -> int:
    """Count unbalanced parentheses. Returns >0 if more open than close."""
    depth = 0
    for c in text:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
    return depth


def format_result(result: SolveResult, trace: bool = False) -> str:
    """Render a solve result (and its trace, when present) for display."""
    if result.success:
        output = format_expr(result.expression)
    else:
        output = f"Failed: {result.message}"
    if trace and result.trace:
        steps = "\n".join(f"  [{index}] {format_expr(step)}"
                          for index, step in enumerate(result.trace))
        output = f"{output}\n{steps}"
    return output


class SymcoreREPL:
    """Interactive REPL for symcore."""

    def __init__(self, builtin: bool = True, trace: bool = False,
                 solve_for: Optional[str] = None,
                 max_iterations: int = config.MAX_ITERATIONS,
                 history: bool = True):
        self.builtin = builtin
        self.engine = SymEngine(None if builtin else [], max_iterations=max_iterations)
        self.trace = trace
        self.solve_for = solve_for
        self.running = True
        self.multi_line_buffer = ""
        self.history_file = config.HISTORY_FILE

        if HAS_READLINE and history:
            try:
                readline.read_history_file(self.history_file)
            except OSError:
                pass
            readline.set_history_length(config.HISTORY_LENGTH)

            self.completer = SymcoreCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            readline.set_completer_delims(" \t\n")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                logger.debug("Could not write history file %s: %s", self.history_file, e)

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd in ("quit", "exit", "q"):
            self.running = False
            return None

        elif cmd == "load":
            if not arg:
                return "Usage: :load FILENAME"
            before = len(self.engine)
            try:
                self.engine.load_file(Path(arg))
            except Exception as e:
                return f"Error loading {arg}: {e}"
            return f"Loaded {len(self.engine) - before} rules from {arg}"

        elif cmd == "rules":
            if not len(self.engine):
                return "No rules loaded"
            return self.engine.to_dsl()

        elif cmd == "clear":
            self.engine.clear()
            return "Cleared all rules"

        elif cmd == "reset":
            self.engine = SymEngine(max_iterations=self.engine.max_iterations)
            return f"Restored {len(self.engine)} built-in rules"

        elif cmd == "trace":
            if arg.lower() in ("on", "true", "1"):
                self.trace = True
            elif arg.lower() in ("off", "false", "0"):
                self.trace = False
            else:
                self.trace = not self.trace
            return f"Tracing {'enabled' if self.trace else 'disabled'}"

        elif cmd == "iterations":
            if not arg.isdigit():
                return f"Usage: :iterations N (currently {self.engine.max_iterations})"
            self.engine.max_iterations = int(arg)
            return f"Max iterations set to {arg}"

        elif cmd == "groups":
            groups = self.engine.groups()
            if not groups:
                return "No groups defined"
            disabled = self.engine.disabled_groups
            return "Groups: " + ", ".join(
                f"{g} (disabled)" if g in disabled else g for g in sorted(groups))

        elif cmd == "enable":
            if not arg:
                return "Usage: :enable GROUP"
            self.engine.enable_group(arg)
            return f"Enabled group: {arg}"

        elif cmd == "disable":
            if not arg:
                return "Usage: :disable GROUP"
            self.engine.disable_group(arg)
            return f"Disabled group: {arg}"

        elif cmd in ("solve", "diff", "int"):
            variable, _, text = arg.partition(" ")
            if not variable or not text.strip():
                return f"Usage: :{cmd} VAR EXPRESSION"
            operation = {
                "solve": self.engine.solve,
                "diff": self.engine.differentiate,
                "int": self.engine.integrate,
            }[cmd]
            try:
                return format_result(operation(text.strip(), variable, tracing=self.trace),
                                     self.trace)
            except SymcoreError as e:
                return f"Error: {e}"

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        return """symcore REPL Commands:
  :help                Show this help
  :load FILE           Load rules from file (.rules or .py)
  :rules               List all loaded rules
  :clear               Remove all rules
  :reset               Restore the built-in rules
  :trace on|off        Toggle tracing
  :iterations N        Set the rewrite pass cap
  :groups              Show all groups
  :enable GROUP        Enable a group
  :disable GROUP       Disable a group
  :solve VAR EQ        Solve an equation for VAR
  :diff VAR EXPR       Differentiate EXPR with respect to VAR
  :int VAR EXPR        Integrate EXPR with respect to VAR
  :quit                Exit

Syntax:
  @name: pattern => template               Define a rule
  @name: pattern => template when free(?f, ?x)
  [groupname]                              Start a rule group
  expression                               Simplify an expression
  lhs = rhs                                Equation (solved with -s VAR)
"""

    def process_line(self, line: str, group: Optional[str] = None) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None. Failures to parse come back
        as text starting with "Error:".
        """
        line = line.strip()

        if not line or line.startswith("#"):
            return None

        if line.startswith(":"):
            return self.handle_command(line)

        if "=>" in line:
            text = f"[{group}]\n{line}" if group else line
            try:
                rules = load_rules_from_dsl(text)
            except SymcoreError as e:
                return f"Error: {e}"
            self.engine.load_rules(rules)
            return f"Added {len(rules)} rule(s)"

        if line.startswith("[") and line.endswith("]"):
            return f"Group: {line[1:-1]}"

        try:
            if self.solve_for:
                result = self.engine.solve(line, self.solve_for, tracing=self.trace)
            else:
                result = self.engine.simplify(line, tracing=self.trace)
        except SymcoreError as e:
            return f"Error: {e}"
        return format_result(result, self.trace)

    def run(self, quiet: bool = False):
        """Run the REPL loop."""
        if not quiet:
            print(f"symcore {__version__} - symbolic rewriting and equation solving")
            print("Type :help for help, :quit to exit")
            print()

        while self.running:
            try:
                prompt = "...... " if self.multi_line_buffer else "sym> "
                line = input(prompt)

                if self.multi_line_buffer:
                    self.multi_line_buffer += " " + line
                else:
                    self.multi_line_buffer = line

                paren_count = count_parens(self.multi_line_buffer)
                if paren_count > 0:
                    continue
                elif paren_count < 0:
                    print("Error: Unbalanced parentheses (too many closing)")
                    self.multi_line_buffer = ""
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                result = self.process_line(complete_input)
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


def _is_error(result: Optional[str]) -> bool:
    return bool(result) and result.startswith("Error")


class ScriptRunner:
    """Runs symcore scripts, one-shot expressions and stdin."""

    def __init__(self, repl: Optional[SymcoreREPL] = None):
        self.repl = repl or SymcoreREPL(history=False)

    def run_script(self, path: Path) -> int:
        """
        Run a script file.

        Returns:
            Exit code (0 for success)
        """
        try:
            lines = path.read_text().splitlines()
        except OSError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            return 1

        current_group = None

        for lineno, line in enumerate(lines, 1):
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if line.startswith("[") and line.endswith("]"):
                current_group = line[1:-1].strip() or None
                continue

            if line.startswith(":"):
                result = self.repl.handle_command(line)
                if result and (result.startswith("Error") or result.startswith("Unknown")):
                    print(f"{path}:{lineno}: {result}", file=sys.stderr)
                    return 1
                if line[1:].split(None, 1)[0].lower() in ("solve", "diff", "int") and result:
                    print(result)
                if not self.repl.running:
                    break
                continue

            result = self.repl.process_line(line, group=current_group)
            if _is_error(result):
                print(f"{path}:{lineno}: {result}", file=sys.stderr)
                return 1
            if result and "=>" not in line:
                print(result)

        return 0

    def run_expression(self, text: str) -> int:
        result = self.repl.process_line(text)
        if result:
            print(result)
        return 1 if _is_error(result) else 0

    def run_stdin(self) -> int:
        """Read lines from stdin and process them; stop at the first error."""
        for line in sys.stdin:
            result = self.repl.process_line(line)
            if result:
                print(result)
                if _is_error(result):
                    return 1
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="symcore",
        description="symcore - symbolic rewriting and equation solving",
        epilog="Examples:\n"
               "  symcore                             Start REPL\n"
               "  symcore script.sym                  Run script\n"
               "  symcore -e 'x + x'                  Simplify an expression\n"
               "  symcore -s x -e '2 * x + 5 = 15'    Solve for x\n"
               "  echo 'y * 0' | symcore              Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("script", nargs="?", help="Script file to run")
    parser.add_argument(
        "-r", "--rules",
        action="append",
        default=[],
        help="Load rules from file (can be specified multiple times)"
    )
    parser.add_argument("-e", "--expr", help="Process a single expression")
    parser.add_argument(
        "--no-builtin",
        action="store_true",
        help="Start without the built-in rules"
    )
    parser.add_argument(
        "-s", "--solve",
        metavar="VAR",
        help="Treat inputs as equations and solve them for VAR"
    )
    parser.add_argument("-t", "--trace", action="store_true", help="Enable tracing")
    parser.add_argument(
        "-n", "--max-iterations",
        type=int,
        default=config.MAX_ITERATIONS,
        help=f"Cap on rewrite passes (default: {config.MAX_ITERATIONS})"
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help=f"Logging level (default: {config.LOG_LEVEL})"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (suppress non-essential output)"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level, config.LOG_FILE)

    if args.max_iterations < 0:
        print("Error: --max-iterations must be >= 0", file=sys.stderr)
        sys.exit(2)

    interactive = not args.script and args.expr is None and sys.stdin.isatty()
    repl = SymcoreREPL(builtin=not args.no_builtin, trace=args.trace,
                       solve_for=args.solve, max_iterations=args.max_iterations,
                       history=interactive)
    runner = ScriptRunner(repl)

    for rules_file in args.rules:
        try:
            repl.engine.load_file(Path(rules_file))
        except Exception as e:
            print(f"Error loading {rules_file}: {e}", file=sys.stderr)
            sys.exit(1)
        if not args.quiet:
            print(f"Loaded rules from {rules_file}", file=sys.stderr)

    if args.script:
        sys.exit(runner.run_script(Path(args.script)))

    elif args.expr is not None:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        sys.exit(runner.run_stdin())

    else:
        repl.run(quiet=args.quiet)


if __name__ == "__main__":
    main()
