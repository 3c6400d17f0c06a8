"""Command-line interface for wgslbind."""

import argparse
import json
import sys
from pathlib import Path

from loguru import logger


def _parse_define(text: str) -> tuple[str, str]:
    key, _, value = text.partition("=")
    if not key:
        raise argparse.ArgumentTypeError(f"invalid define '{text}'")
    return key, value


def _configure_logging(verbosity: int) -> None:
    level = "WARNING"
    if verbosity == 1:
        level = "INFO"
    elif verbosity >= 2:
        level = "DEBUG"
    logger.remove()
    logger.add(sys.stderr, level=level)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="wgslbind",
        description="WGSL preprocessor and binding reflection",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    parser.add_argument(
        "--version", action="version", version="wgslbind 0.1.0"
    )
    sub = parser.add_subparsers(dest="command")

    pre = sub.add_parser("preprocess", help="Resolve imports, conditionals and macros")
    pre.add_argument("input", help="Input .wgsl file")
    pre.add_argument(
        "-D", "--define", action="append", type=_parse_define, default=[],
        metavar="KEY[=VALUE]", help="Define a preprocessor key (repeatable)",
    )
    pre.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write the result here instead of stdout",
    )

    refl = sub.add_parser("reflect", help="Reflect a module declaration document")
    refl.add_argument("input", help="Module declaration .json file")
    refl.add_argument(
        "--options", type=Path, default=None,
        help="Reflection options .json file",
    )
    refl.add_argument(
        "--name", type=str, default=None,
        help="Module name (default: input file stem)",
    )

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        sys.exit(1)

    # --- Preprocess mode ---
    if args.command == "preprocess":
        from wgslbind.compiler import preprocess_file
        try:
            result = preprocess_file(input_path, dict(args.define))
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(result.text, encoding="utf-8")
            print(f"Wrote {args.output}")
        else:
            sys.stdout.write(result.text)
        return

    # --- Reflect mode ---
    from wgslbind.compiler import module_name_for
    from wgslbind.ir.builder import load_module
    from wgslbind.options import ReflectionOptions
    from wgslbind.reflection.builder import build_binding_model
    from wgslbind.reflection.emit import emit_reflection_json

    try:
        document = json.loads(input_path.read_text(encoding="utf-8"))
        options = ReflectionOptions()
        if args.options:
            options = ReflectionOptions.from_dict(
                json.loads(args.options.read_text(encoding="utf-8"))
            )
        module = load_module(document)
        model = build_binding_model(
            module, options, args.name or module_name_for(input_path),
        )
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.stdout.write(emit_reflection_json(model))


if __name__ == "__main__":
    main()
