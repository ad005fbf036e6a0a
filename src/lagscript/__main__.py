#!/usr/bin/env python3
"""
CLI for the Lag scripting pipeline.

Usage:
    python -m lagscript check FILE.lag
    python -m lagscript list FILE.lag
    python -m lagscript transpile FILE.lag [--output FILE.py] [--name NAME]
    python -m lagscript run FILE ENTRY [ARG ...]
    python -m lagscript watch FILE [FILE ...] [--interval SECONDS] [--entry ENTRY]

Examples:
    # Check syntax and types
    python -m lagscript check scripts/player.lag

    # Show the generated Python
    python -m lagscript transpile scripts/player.lag

    # Call an entry point with arguments
    python -m lagscript run scripts/shapes.lag area 2.0 3.5

    # Reload scripts as they are edited, calling 'tick' after each check
    python -m lagscript watch scripts/*.lag --entry tick --interval 0.5
"""

import argparse
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, List


def parse_value(value_str: str) -> Any:
    """Parse a command line argument into a bool, int, float or string."""
    value_str = value_str.strip()
    if value_str.lower() == 'true':
        return True
    if value_str.lower() == 'false':
        return False

    try:
        return int(value_str)
    except ValueError:
        pass

    try:
        return float(value_str)
    except ValueError:
        pass

    if (value_str.startswith('"') and value_str.endswith('"')) or \
       (value_str.startswith("'") and value_str.endswith("'")):
        value_str = value_str[1:-1]
    return value_str


def _read_source(path_str: str):
    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return source_path, None
    return source_path, source_path.read_text(encoding="utf-8")


def _make_engine(args):
    from .runtime import ScriptEngine
    return ScriptEngine(config=args.config_obj)


def cmd_check(args) -> int:
    """Check a Lag file for syntax and type errors."""
    from .lag import parse, check_program
    from .lag.errors import LagError

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        program = parse(source, str(source_path))
    except LagError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    result = check_program(program, args.config_obj.checker.max_errors, source)
    if result.has_errors:
        print(f"Type checking failed with {len(result.diagnostics)} error(s):")
        for diag in result.diagnostics:
            print(diag.format())
        return 1

    print(f"OK: {source_path.name} - {len(program.functions)} function(s), "
          f"{len(program.globals)} global(s), no errors")
    return 0


def cmd_list(args) -> int:
    """List the functions a Lag file exports."""
    from .lag import parse
    from .lag.errors import LagError

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        program = parse(source, str(source_path))
    except LagError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    print(f"Functions ({len(program.functions)}):")
    for func in program.functions:
        params = ", ".join(f"{p.name}: {p.type_annotation.name}" for p in func.parameters)
        returns = func.return_type.name if func.return_type else "void"
        print(f"  {func.name}({params}) -> {returns}")
    return 0


def cmd_transpile(args) -> int:
    """Print or write the Python generated for a Lag file."""
    from .lag.errors import LagError

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    engine = _make_engine(args)
    try:
        host_source = engine.transpile_source(source, args.name or source_path.stem,
                                              str(source_path))
    except LagError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    if args.output:
        Path(args.output).write_text(host_source, encoding="utf-8")
        print(f"Wrote {args.output}")
    else:
        print(host_source, end="")
    return 0


def cmd_run(args) -> int:
    """Load a script and call one of its entry points."""
    from .lag.errors import ScriptError

    if not Path(args.file).exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return 1

    engine = _make_engine(args)
    values = [parse_value(v) for v in args.args]
    try:
        script = engine.load_file(args.file)
        result = engine.invoke(script.id, args.entry, *values)
    except ScriptError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result is not None:
        print(result)
    return 0


def cmd_watch(args) -> int:
    """Load scripts, then poll their files and hot-reload on change."""
    from .lag.errors import ScriptError
    from .runtime import HotReloadWatcher, load_script_file
    from .utils.logging import get_logger

    logger = get_logger("cli")
    engine = _make_engine(args)

    workers = args.config_obj.reload.workers
    executor = ThreadPoolExecutor(max_workers=workers) if workers > 0 else None
    watcher = HotReloadWatcher(engine, executor=executor)

    scripts = []
    for path in args.files:
        try:
            script = load_script_file(path)
            watcher.watch(script)
        except (ScriptError, OSError, ValueError) as e:
            logger.error(f"Could not watch {path}: {e}")
            continue
        try:
            engine.load(script)
        except ScriptError as e:
            # Stays watched: fixing the file triggers a reload
            logger.error(f"Could not load {path}: {e}")
        scripts.append(script)

    if not scripts:
        print("Error: nothing to watch", file=sys.stderr)
        return 1

    iteration = 0
    try:
        while args.iterations == 0 or iteration < args.iterations:
            iteration += 1
            for result in watcher.check_all():
                if result.future is not None:
                    result.future.result()
            if args.entry:
                for script in scripts:
                    try:
                        engine.invoke(script.id, args.entry)
                    except ScriptError as e:
                        logger.error(str(e))
            time.sleep(args.interval)
    except KeyboardInterrupt:
        pass
    finally:
        if executor is not None:
            executor.shutdown(wait=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='python -m lagscript',
        description='Lag script checker, transpiler and runner',
    )
    parser.add_argument('--config', metavar='FILE', help='YAML configuration file')
    parser.add_argument('--log-level', metavar='LEVEL',
                        help='Logging level (overrides configuration)')

    subparsers = parser.add_subparsers(dest='action', required=True)

    check_parser = subparsers.add_parser('check', help='Check a Lag file for errors')
    check_parser.add_argument('file', help='Lag source file')

    list_parser = subparsers.add_parser('list', help='List functions in a Lag file')
    list_parser.add_argument('file', help='Lag source file')

    transpile_parser = subparsers.add_parser('transpile', help='Show generated Python')
    transpile_parser.add_argument('file', help='Lag source file')
    transpile_parser.add_argument('-o', '--output', metavar='FILE', help='Write to FILE')
    transpile_parser.add_argument('--name', help='Module name (default: file stem)')

    run_parser = subparsers.add_parser('run', help='Call an entry point of a script')
    run_parser.add_argument('file', help='Script file (.lag or .py)')
    run_parser.add_argument('entry', help='Entry point to call')
    run_parser.add_argument('args', nargs='*', help='Arguments (int, float, bool or string)')

    watch_parser = subparsers.add_parser('watch', help='Hot-reload scripts as they change')
    watch_parser.add_argument('files', nargs='+', help='Script files (.lag or .py)')
    watch_parser.add_argument('--interval', type=float, default=1.0,
                              help='Seconds between checks (default 1.0)')
    watch_parser.add_argument('--entry', help='Entry point to call after each check')
    watch_parser.add_argument('--iterations', type=int, default=0,
                              help='Stop after N checks (default: run until interrupted)')
    return parser


def main(argv: List[str] = None) -> int:
    from .utils.config import load_config, ConfigError
    from .utils.logging import setup_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        args.config_obj = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    level = args.log_level or args.config_obj.logging.level
    setup_logging(level, args.config_obj.logging.log_file)

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'list':
        return cmd_list(args)
    elif args.action == 'transpile':
        return cmd_transpile(args)
    elif args.action == 'run':
        return cmd_run(args)
    elif args.action == 'watch':
        return cmd_watch(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
