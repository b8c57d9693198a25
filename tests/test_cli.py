import os
import subprocess
import sys

import pytest

from duet.main import balance, main

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def run_duet(args, inp=""):
    proc = subprocess.run(
        [sys.executable, "-m", "duet.main", *args],
        input=inp,
        text=True,
        capture_output=True,
        cwd=ROOT,
        timeout=30,
    )
    return proc


def test_repl_prints_results():
    proc = run_duet([], "1 + 2\nexit\n")
    assert proc.returncode == 0, proc.stderr
    assert "3" in proc.stdout


def test_repl_keeps_state_between_lines():
    proc = run_duet([], "x = 2\nx + 5\n")
    assert proc.returncode == 0, proc.stderr
    assert "7" in proc.stdout


def test_repl_joins_open_blocks():
    proc = run_duet([], "def twice(v) {\n  v * 2\n}\ntwice(4)\nexit\n")
    assert proc.returncode == 0, proc.stderr
    assert "8" in proc.stdout


def test_repl_labels_failures_and_continues():
    proc = run_duet([], "x = )\n1 / 0\nnope\n40 + 2\n")
    assert "[PARSE ERROR]" in proc.stderr
    assert "[RUNTIME ERROR] Division by zero" in proc.stderr
    assert "Undefined variable 'nope'" in proc.stderr
    assert "42" in proc.stdout


def test_repl_jit_engine():
    proc = run_duet(["--engine", "jit"], 'x = 2\nx + 5\nprint("from jit")\nmissing\nexit\n')
    assert proc.returncode == 0, proc.stderr
    assert "7" in proc.stdout
    assert "from jit" in proc.stdout
    assert "[LOWERING ERROR]" in proc.stderr


def test_repl_both_engines_echo_once_when_they_agree():
    proc = run_duet(["--engine", "both"], "6 * 7\nexit\n")
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.count("42") == 1
    assert "interp:" not in proc.stdout


def test_repl_both_engines_label_a_one_sided_result():
    proc = run_duet(["--engine", "both"], "def g(a) { a = 1 }; 5\nexit\n")
    assert "[LOWERING ERROR]" in proc.stderr
    assert "interp: 5" in proc.stdout


def test_file_with_both_engines(tmp_path):
    source = tmp_path / "prog.duet"
    source.write_text('x = 1\nfor(i = 0; i < 3; i++) x = x * 2\nprint("x=" + x)\n')
    proc = run_duet([str(source), "--engine", "both"])
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.count("x=8") == 2
    assert "[MISMATCH]" not in proc.stderr


def test_file_failure_sets_exit_code(tmp_path):
    source = tmp_path / "bad.duet"
    source.write_text("1 / 0\n")
    proc = run_duet([str(source)])
    assert proc.returncode == 1
    assert "[RUNTIME ERROR]" in proc.stderr


def test_emit_ir_and_ast(tmp_path):
    source = tmp_path / "ir.duet"
    source.write_text("1 + 2\n")
    proc = run_duet([str(source), "--engine", "jit", "--emit-ir", "--ast"])
    assert proc.returncode == 0, proc.stderr
    assert "BinaryOp op='+'" in proc.stdout
    assert "repl_entry_" in proc.stderr


def test_emit_ir_needs_the_generator(capsys):
    with pytest.raises(SystemExit):
        main(["--emit-ir"])
    assert "--emit-ir" in capsys.readouterr().err


def test_missing_file(capsys):
    assert main(["/nonexistent/prog.duet"]) == 1
    assert "cannot read" in capsys.readouterr().err


def test_seeded_runs_repeat(tmp_path):
    source = tmp_path / "dice.duet"
    source.write_text("print(random(1, 1000))\n")
    first = run_duet([str(source), "--seed", "3"]).stdout
    second = run_duet([str(source), "--seed", "3"]).stdout
    assert first == second
    assert first.strip().isdigit()


def test_balance_ignores_strings_and_comments():
    assert balance("def f() {") == 1
    assert balance('"{" + x # }') == 0
    assert balance("}") == -1
