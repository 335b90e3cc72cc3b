import importlib.util
import json
import sys
import uuid
from pathlib import Path


def _load_repl_module():
    """Dynamically load the top-level frutta.py (REPL/CLI) as a module with a unique name."""
    repl_path = Path(__file__).resolve().parents[1] / "frutta.py"
    mod_name = f"frutta_repl_for_test_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(mod_name, str(repl_path))
    mod = importlib.util.module_from_spec(spec)
    sys.modules[mod_name] = mod
    assert spec.loader is not None
    spec.loader.exec_module(mod)
    return mod


def _feed(monkeypatch, repl, lines):
    it = iter(lines)

    def fake_read_line(prompt: str) -> str:
        return next(it)
    monkeypatch.setattr(repl, "read_line", fake_read_line)


def test_repl_exit_immediately(monkeypatch, capsys):
    repl = _load_repl_module()
    _feed(monkeypatch, repl, ["exit\n"])

    assert repl.main([]) == 0
    out = capsys.readouterr().out
    assert "Frutta REPL v0.1" in out
    assert "Type 'exit' or press Ctrl+D to quit." in out


def test_repl_prints_output_and_values(monkeypatch, capsys):
    repl = _load_repl_module()
    _feed(monkeypatch, repl, [
        'Std.print("hello from frutta")\n',
        "x = 1 + 2\n",
        "\n",
        "x\n",
        '"quoted"\n',
        "exit\n",
    ])

    repl.main([])
    out, err = capsys.readouterr()
    assert "hello from frutta" in out
    assert "\n3\n" in out
    assert '"quoted"' in out
    # Std.print returns None, which is not echoed
    assert "None" not in out
    assert err == ""


def test_repl_keeps_definitions_between_lines(monkeypatch, capsys):
    repl = _load_repl_module()
    _feed(monkeypatch, repl, [
        "fn sq(n) { return n * n }\n",
        "sq(12)\n",
        "exit\n",
    ])

    repl.main([])
    assert "144" in capsys.readouterr().out


def test_repl_errors_print_to_stderr(monkeypatch, capsys):
    repl = _load_repl_module()
    _feed(monkeypatch, repl, [
        '"a" - "b"\n',
        "1 +\n",
        "1 + 1\n",
        "exit\n",
    ])

    repl.main([])
    out, err = capsys.readouterr()
    assert "UnsupportedOperatorError" in err
    assert "ParseError: Unexpected end of file at 1:4" in err
    # The session survives both errors
    assert "2" in out


def test_repl_eof_quits(monkeypatch, capsys):
    repl = _load_repl_module()
    _feed(monkeypatch, repl, [""])

    assert repl.main([]) == 0
    assert "Exiting." in capsys.readouterr().out


def test_run_script_file(tmp_path, capsys):
    repl = _load_repl_module()
    script = tmp_path / "fib.fru"
    script.write_text(
        "fn fib(n) { if n == 0 {return 0} if n == 1 {return 1} return fib(n-1)+fib(n-2)}\n"
        "Std.print(fib(10))\n",
        encoding="utf-8",
    )

    assert repl.main([str(script)]) == 0
    assert capsys.readouterr().out == "55\n"


def test_run_script_file_with_timing(tmp_path, capsys):
    repl = _load_repl_module()
    script = tmp_path / "one.fru"
    script.write_text("1 + 1", encoding="utf-8")

    assert repl.main([str(script), "--time"]) == 0
    out = capsys.readouterr().out
    assert "Parsing time:" in out
    assert "Execution time:" in out


def test_timing_is_reported_when_parsing_fails(tmp_path, capsys):
    repl = _load_repl_module()
    script = tmp_path / "bad.fru"
    script.write_text("1 +", encoding="utf-8")

    assert repl.main([str(script), "-t"]) == 1
    out = capsys.readouterr().out
    assert "Parsing time:" in out
    assert "Execution time:" not in out


def test_run_script_file_reports_errors(tmp_path, capsys):
    repl = _load_repl_module()
    script = tmp_path / "bad.fru"
    script.write_text("x = 1\ny = (2 + 3", encoding="utf-8")

    assert repl.main([str(script)]) == 1
    err = capsys.readouterr().err
    assert "ParseError: Unclosed parenthesis at 2:5" in err
    assert "| ----^" in err


def test_missing_file(tmp_path, capsys):
    repl = _load_repl_module()
    assert repl.main([str(tmp_path / "nope.fru")]) == 1
    assert "file not found" in capsys.readouterr().err


def test_show_ast_formats(tmp_path, capsys):
    repl = _load_repl_module()
    script = tmp_path / "ast.fru"
    script.write_text("x = 1+2", encoding="utf-8")

    assert repl.main([str(script), "--ast"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data['tag'] == 'block'
    assert data['statements'][0]['tag'] == 'assign'

    assert repl.main([str(script), "--ast", "--format", "yaml"]) == 0
    assert "tag: block" in capsys.readouterr().out

    assert repl.main([str(script), "-a", "-f", "source"]) == 0
    assert capsys.readouterr().out == "x = 1 + 2\n"
