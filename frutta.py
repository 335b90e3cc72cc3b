import argparse
import sys
from pathlib import Path

from frutta.frutta_errors import ParseError
from frutta.frutta_parser import parse
from frutta.frutta_printer import Printer, debug_repr
from frutta.frutta_runtime import ScriptRunner
from frutta.frutta_serialize import serialize


# A basic input prompt.
def read_line(prompt: str) -> str:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="frutta", description="Frutta programming language CLI")
    ap.add_argument("input", nargs="?", help="Input file")
    ap.add_argument("-a", "--ast", action="store_true", help="Show the AST instead of running")
    ap.add_argument("-f", "--format", choices=("json", "yaml", "source"), default="json",
                    help="AST output format for --ast")
    ap.add_argument("-t", "--time", action="store_true", help="Show parsing and execution time")
    return ap


def show_ast(source: str, fmt: str) -> int:
    try:
        program = parse(source)
    except ParseError as e:
        print(f"ParseError: {e.render()}", file=sys.stderr)
        return 1
    if fmt == "source":
        print(Printer().pformat(program))
    else:
        print(serialize(program, fmt=fmt))
    return 0


def run_script_file(file_path: str, show_time: bool = False) -> int:
    """Run a Frutta script file non-interactively and return an exit status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1

    runner = ScriptRunner()
    result = runner.handle_script(source)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
    if show_time:
        # Parsing time is reported even when parsing failed.
        print(f"Parsing time: {result.parse_time * 1000:.3f} ms")
        if result.exec_time is not None:
            print(f"Execution time: {result.exec_time * 1000:.3f} ms")
    return 1 if result.status == 'error' else 0


def repl() -> int:
    print("Frutta REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner()

    while True:
        try:
            raw = read_line(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = runner.handle_script(line)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            if result.value is not None:
                print(debug_repr(result.value))

        except EOFError:
            print("\nExiting.")
            break
    return 0


def main(argv=None) -> int:
    """Run a script file when provided, otherwise start the interactive REPL."""
    args = build_arg_parser().parse_args(argv)
    if args.input is None:
        return repl()
    if args.ast:
        try:
            source = Path(args.input).read_text(encoding="utf-8")
        except FileNotFoundError:
            print(f"Error: file not found: {args.input}", file=sys.stderr)
            return 1
        return show_ast(source, args.format)
    return run_script_file(args.input, show_time=args.time)


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        print("\nExiting.")
