"""Tests for CLI module."""

import io
import subprocess
import sys

import pytest

from symcore import ALL_RULES
from symcore.cli import (
    SymcoreREPL, SymcoreCompleter, ScriptRunner, count_parens, format_result, main,
)
from symcore.solver import simplify


def make_repl(**kwargs):
    return SymcoreREPL(history=False, **kwargs)


class TestREPLCommands:
    """Tests for REPL command handling."""

    def test_help_command(self):
        """Help command returns help text."""
        result = make_repl().handle_command(":help")
        assert ":load" in result
        assert ":solve" in result

    def test_trace_command(self):
        """Trace command sets tracing."""
        repl = make_repl()
        assert "enabled" in repl.handle_command(":trace on")
        assert repl.trace is True
        assert "disabled" in repl.handle_command(":trace off")
        assert repl.trace is False

    def test_trace_toggle(self):
        """Trace command without arg toggles."""
        repl = make_repl()
        repl.handle_command(":trace")
        assert repl.trace is True
        repl.handle_command(":trace")
        assert repl.trace is False

    def test_clear_and_reset(self):
        """Clear removes all rules, reset restores the built-in ones."""
        repl = make_repl()
        repl.handle_command(":clear")
        assert len(repl.engine) == 0
        assert repl.process_line("x + x") == "x + x"
        assert "Restored" in repl.handle_command(":reset")
        assert len(repl.engine) == len(ALL_RULES)
        assert repl.process_line("x + x") == "2 * x"

    def test_rules_command_empty(self):
        """Rules command with no rules."""
        assert make_repl(builtin=False).handle_command(":rules") == "No rules loaded"

    def test_rules_command_with_rules(self):
        """Rules command lists rules in DSL form."""
        result = make_repl().handle_command(":rules")
        assert "[algebra]" in result
        assert "@collect-identical" in result

    def test_iterations(self):
        """Iterations command sets the cap."""
        repl = make_repl()
        assert repl.handle_command(":iterations 5") == "Max iterations set to 5"
        assert repl.engine.max_iterations == 5
        assert repl.handle_command(":iterations lots").startswith("Usage")

    def test_enable_disable_group(self):
        """Groups can be disabled and re-enabled."""
        repl = make_repl()
        assert repl.handle_command(":disable derivative") == "Disabled group: derivative"
        assert "derivative (disabled)" in repl.handle_command(":groups")
        assert repl.process_line("Derivative(x, x)") == "Derivative(x, x)"
        repl.handle_command(":enable derivative")
        assert repl.process_line("Derivative(x, x)") == "1"

    def test_groups_command_empty(self):
        """Groups command without rules."""
        assert make_repl(builtin=False).handle_command(":groups") == "No groups defined"

    def test_load_command(self, tmp_path):
        """Load command reads a rules file."""
        path = tmp_path / "extra.rules"
        path.write_text("@f: f(?x) => ?x\n@g: g(?x) => ?x\n")
        repl = make_repl(builtin=False)
        assert repl.handle_command(f":load {path}") == f"Loaded 2 rules from {path}"
        assert repl.process_line("f(g(y))") == "y"

    def test_load_missing_file(self, tmp_path):
        """Loading a missing file reports an error."""
        result = make_repl().handle_command(f":load {tmp_path / 'missing.rules'}")
        assert result.startswith("Error loading")

    def test_solve_diff_int(self):
        """Solve, diff and int take a variable and an expression."""
        repl = make_repl()
        assert repl.handle_command(":solve x 2 * x + 5 = 15") == "x = 5"
        assert repl.handle_command(":diff x x ** 2") == "2 * x"
        assert repl.handle_command(":int x cos(x)") == "sin(x)"

    def test_solve_failure(self):
        """A failed solve is shown with its reason."""
        result = make_repl().handle_command(":solve x x = x + 1")
        assert result.startswith("Failed: No further progress")

    def test_solve_usage_and_errors(self):
        """Missing arguments and bad input are reported."""
        repl = make_repl()
        assert repl.handle_command(":solve x").startswith("Usage")
        assert repl.handle_command(":solve x 2 * = 4").startswith("Error:")

    def test_quit_command(self):
        """Quit command stops the REPL."""
        repl = make_repl()
        assert repl.handle_command(":quit") is None
        assert repl.running is False

    def test_unknown_command(self):
        """Unknown commands are reported."""
        assert make_repl().handle_command(":frobnicate").startswith("Unknown command")


class TestProcessLine:
    """Tests for line processing."""

    def test_empty_and_comment(self):
        """Empty lines and comments produce nothing."""
        repl = make_repl()
        assert repl.process_line("") is None
        assert repl.process_line("# note") is None

    @pytest.mark.parametrize("text,expected", [
        ("x + x", "2 * x"),
        ("y * 0", "0"),
        ("(x + y) * 1", "x + y"),
        ("Grad(5, Vector(x, y))", "Vector(0, 0)"),
    ])
    def test_simplify(self, text, expected):
        """Expressions are simplified."""
        assert make_repl().process_line(text) == expected

    def test_deep_nesting_is_an_error(self):
        """Over-deep input is reported, not raised."""
        result = make_repl().process_line("(" * 250 + "x" + ")" * 250)
        assert result.startswith("Error:")
        assert "nested deeper" in result

    def test_guard_on_unknown_wildcard(self):
        """A guard naming a wildcard missing from the pattern is rejected."""
        repl = make_repl(builtin=False)
        result = repl.process_line("@bad: f(?x) => ?x when symbol(?q)")
        assert result.startswith("Error:")
        assert repl.process_line("f(z)") == "f(z)"

    def test_rule_definition(self):
        """Rule lines add rules."""
        repl = make_repl(builtin=False)
        assert repl.process_line("@f: f(?x) => ?x") == "Added 1 rule(s)"
        assert repl.process_line("f(y)") == "y"

    def test_rule_group(self):
        """Rules defined under a group are tagged."""
        repl = make_repl(builtin=False)
        repl.process_line("@f: f(?x) => ?x", group="mine")
        assert repl.engine.groups() == {"mine"}

    def test_bad_rule(self):
        """A malformed rule is an error."""
        assert make_repl().process_line("?x => ?y").startswith("Error:")

    def test_parse_error(self):
        """Malformed expressions are errors."""
        assert make_repl().process_line("x +").startswith("Error:")

    def test_solve_mode(self):
        """With solve_for set, lines are solved."""
        assert make_repl(solve_for="x").process_line("3 * x = 12") == "x = 4"

    def test_trace_output(self):
        """Tracing appends numbered steps."""
        repl = make_repl(trace=True)
        assert repl.process_line("x + x") == "2 * x\n  [0] x + x\n  [1] 2 * x"


class TestFormatting:
    """Tests for helpers."""

    def test_format_result(self):
        """Results print their expression or failure."""
        assert format_result(simplify("x + x")) == "2 * x"
        assert format_result(simplify("x + x", max_iterations=0)).startswith("Failed:")

    def test_count_parens(self):
        """Unbalanced parentheses are counted."""
        assert count_parens("f(x)") == 0
        assert count_parens("f(g(x)") == 1
        assert count_parens("x))") == -2

    def test_completer_commands(self):
        """Commands complete from a colon prefix."""
        completer = SymcoreCompleter(make_repl())
        assert ":solve" in completer._get_matches(":so", ":so")
        assert completer._get_matches("o", ":trace o") == ["on", "off"]

    def test_completer_groups(self):
        """Group names complete after :enable and :disable."""
        completer = SymcoreCompleter(make_repl())
        assert completer._get_matches("d", ":disable d") == ["derivative"]


class TestScriptRunner:
    """Tests for scripts, one-shot expressions and stdin."""

    def test_run_script(self, tmp_path, capsys):
        """Scripts define rules, simplify and solve."""
        script = tmp_path / "demo.sym"
        script.write_text(
            "# demo\n"
            "[mine]\n"
            "@f: f(?x) => ?x + ?x\n"
            "f(y)\n"
            ":solve x 2 * x = 8\n"
        )
        runner = ScriptRunner(make_repl())
        assert runner.run_script(script) == 0
        assert capsys.readouterr().out == "2 * y\nx = 4\n"
        assert "mine" in runner.repl.engine.groups()

    def test_script_error(self, tmp_path, capsys):
        """An error stops the script with its line number."""
        script = tmp_path / "bad.sym"
        script.write_text("x + x\nx +\ny + y\n")
        assert ScriptRunner(make_repl()).run_script(script) == 1
        captured = capsys.readouterr()
        assert captured.out == "2 * x\n"
        assert f"{script}:2: Error:" in captured.err

    def test_missing_script(self, tmp_path, capsys):
        """A missing script exits 1."""
        assert ScriptRunner(make_repl()).run_script(tmp_path / "nope.sym") == 1

    def test_run_expression(self, capsys):
        """One-shot expressions print their result."""
        runner = ScriptRunner(make_repl())
        assert runner.run_expression("x + x") == 0
        assert runner.run_expression("x +") == 1
        out = capsys.readouterr().out
        assert out.startswith("2 * x\nError:")

    def test_run_stdin(self, monkeypatch, capsys):
        """Each stdin line is processed."""
        monkeypatch.setattr(sys, "stdin", io.StringIO("x + x\ny * 0\n"))
        assert ScriptRunner(make_repl()).run_stdin() == 0
        assert capsys.readouterr().out == "2 * x\n0\n"


class TestMain:
    """Tests for the entry point."""

    def run_main(self, argv):
        with pytest.raises(SystemExit) as info:
            main(argv)
        return info.value.code

    def test_expression(self, capsys):
        """-e simplifies one expression."""
        assert self.run_main(["-e", "x + x"]) == 0
        assert capsys.readouterr().out == "2 * x\n"

    def test_solve(self, capsys):
        """-s solves for a variable."""
        assert self.run_main(["-s", "x", "-e", "2 * x + 5 = 15"]) == 0
        assert capsys.readouterr().out == "x = 5\n"

    def test_no_builtin(self, capsys):
        """--no-builtin starts without rules."""
        assert self.run_main(["--no-builtin", "-e", "x + x"]) == 0
        assert capsys.readouterr().out == "x + x\n"

    def test_rules_file(self, tmp_path, capsys):
        """-r loads extra rules."""
        path = tmp_path / "extra.rules"
        path.write_text("@f: f(?x) => 7\n")
        assert self.run_main(["-q", "-r", str(path), "-e", "f(y)"]) == 0
        assert capsys.readouterr().out == "7\n"

    def test_missing_rules_file(self, tmp_path):
        """A missing rules file exits 1."""
        assert self.run_main(["-r", str(tmp_path / "nope.rules"), "-e", "x"]) == 1

    def test_negative_iterations(self):
        """A negative iteration cap is a usage error."""
        assert self.run_main(["-n", "-1", "-e", "x"]) == 2

    def test_parse_error_exit_code(self):
        """A malformed expression exits 1."""
        assert self.run_main(["-e", "x +"]) == 1


class TestCLIIntegration:
    """Integration tests using subprocess."""

    def test_version_flag(self):
        """--version flag works."""
        result = subprocess.run(
            [sys.executable, "-m", "symcore.cli", "--version"],
            capture_output=True, text=True
        )
        assert result.returncode == 0
        assert "symcore" in result.stdout

    def test_pipe_mode(self):
        """Piped input is processed line by line."""
        result = subprocess.run(
            [sys.executable, "-m", "symcore.cli", "-q"],
            input="x + x\n(x + y) * 1\n",
            capture_output=True, text=True
        )
        assert result.returncode == 0
        assert result.stdout.splitlines() == ["2 * x", "x + y"]
