import argparse
import logging
import sys

from duet import rtypes
from duet.context import Session
from duet.errors import DuetError
from duet.interpreter import Interpreter
from duet.nodes import dump
from duet.parser import parse

log = logging.getLogger(__name__)

LABELS = {
    "parse": "[PARSE ERROR]",
    "lower": "[LOWERING ERROR]",
    "execute": "[RUNTIME ERROR]",
}

QUIT_WORDS = ("exit", "quit", ":q")


def report(error, engine=None):
    label = LABELS.get(error.stage, "[ERROR]")
    prefix = f"{label} ({engine})" if engine else label
    print(f"{prefix} {error}", file=sys.stderr, flush=True)


class Shell:
    """Runs submissions against one or both engines, each with its own session."""

    def __init__(self, engine="interp", emit_ir=False, show_ast=False):
        self.engine = engine
        self.show_ast = show_ast
        self.interpreter = None
        self.codegen = None
        if engine in ("interp", "both"):
            self.interpreter = Interpreter(Session())
        if engine in ("jit", "both"):
            # llvmlite is only loaded when the generator is used
            from duet.codegen import CodeGen
            self.codegen = CodeGen(Session(), dump_ir=emit_ir)

    def submit(self, source):
        """Run one submission; returns (ok, results by engine name)."""
        try:
            node = parse(source)
        except DuetError as e:
            report(e)
            return False, {}
        if self.show_ast:
            print(dump(node), flush=True)

        ok = True
        results = {}
        for name, runner in self.runners():
            try:
                results[name] = runner(node)
            except DuetError as e:
                report(e, name if self.engine == "both" else None)
                ok = False

        if len(results) == 2:
            left, right = (rtypes.to_text(results[k]) for k in ("interp", "jit"))
            if left != right:
                print(f"[MISMATCH] interp={left} jit={right}", file=sys.stderr, flush=True)
                ok = False
        return ok, results

    def runners(self):
        if self.interpreter is not None:
            yield "interp", self.interpreter.evaluate
        if self.codegen is not None:
            yield "jit", self.codegen.run


def balance(line):
    # Brace depth change of one REPL line, ignoring strings and comments.
    depth = 0
    in_string = False
    escaped = False
    for ch in line:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == "#":
            break
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
    return depth


def repl(shell):
    print(f"Duet REPL ({shell.engine}). Type exit to quit.", flush=True)
    buffer_lines = []
    depth = 0
    while True:
        prompt = "duet> " if not buffer_lines else "...> "
        try:
            line = input(prompt)
        except (EOFError, KeyboardInterrupt):
            print()
            break

        stripped = line.strip()
        if not buffer_lines and stripped in QUIT_WORDS:
            break
        if not stripped and not buffer_lines:
            continue

        buffer_lines.append(line)
        depth += balance(line)
        if depth > 0:
            continue

        source = "\n".join(buffer_lines)
        buffer_lines = []
        depth = 0

        ok, results = shell.submit(source)
        echo(ok, results)
    return 0


def echo(ok, results):
    # Agreeing engines print once; otherwise each engine's value is labelled.
    values = {name: value for name, value in results.items() if value is not None}
    if ok:
        for value in values.values():
            print(rtypes.to_text(value), flush=True)
            break
        return
    for name, value in values.items():
        print(f"{name}: {rtypes.to_text(value)}", flush=True)


def main(argv=None):
    ap = argparse.ArgumentParser(prog="duet", description="Duet interpreter and LLVM JIT")
    ap.add_argument("file", nargs="?", help="Source file to run as one submission (REPL when omitted)")
    ap.add_argument("--engine", choices=["interp", "jit", "both"], default="interp",
                    help="Execution engine (both: run each and compare results)")
    ap.add_argument("--emit-ir", action="store_true", help="Write the LLVM IR of each submission to stderr")
    ap.add_argument("--ast", action="store_true", help="Print the parsed tree of each submission")
    ap.add_argument("--seed", type=int, default=None, help="Seed the shared random generator")
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.seed is not None:
        rtypes.seed(args.seed)
        log.debug("seeded shared generator with %d", args.seed)

    if args.emit_ir and args.engine == "interp":
        ap.error("--emit-ir needs --engine jit or both")

    shell = Shell(args.engine, emit_ir=args.emit_ir, show_ast=args.ast)
    if args.file is None:
        return repl(shell)

    try:
        with open(args.file, "r", encoding="utf-8") as f:
            source = f.read()
    except OSError as e:
        print(f"[ERROR] cannot read {args.file}: {e}", file=sys.stderr)
        return 1
    ok, _ = shell.submit(source)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
