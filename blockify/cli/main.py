from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from typing import Any, List

from blockify.core.config import BlockifyConfig
from blockify.core.exceptions import InvalidInputFormat
from blockify.core.normalization import BlockPipeline
from blockify.core.render import HtmlRenderer
from blockify.core.schema import default_registry

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_USAGE = 2


def _json_default(o):
    # Lazy import keeps CLI startup light and avoids circular imports
    from blockify.utils.json_safe import to_jsonable

    return to_jsonable(o)


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False, default=_json_default))


def _read_document(path: str) -> str:
    """Read raw document text from a file, or stdin when path is '-'."""

    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def _pipeline(dev: bool = False) -> BlockPipeline:
    cfg = BlockifyConfig.from_env()
    if dev:
        cfg = replace(cfg, dev=True)
    return BlockPipeline(default_registry(), cfg)


def cmd_normalize(args: argparse.Namespace) -> int:
    """Normalize a document and print blocks plus errors as JSON."""

    try:
        raw = _read_document(args.path)
    except OSError as e:
        print(f"error: cannot read {args.path}: {e}", file=sys.stderr)
        return EXIT_USAGE

    pipeline = _pipeline(dev=args.dev)
    try:
        result = pipeline.normalize(raw)
    except InvalidInputFormat as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE

    if args.errors_only:
        out: Any = {"errors": result.errors, "valid": result.is_valid}
    else:
        out = result.to_dict()
        if args.render:
            out["html"] = HtmlRenderer(pipeline.registry, pipeline.config).render(result.blocks)
    _print_json(out)

    if args.strict and not result.is_valid:
        return EXIT_INVALID
    return EXIT_OK


def cmd_render(args: argparse.Namespace) -> int:
    """Normalize a document and print its markup (or plain text)."""

    try:
        raw = _read_document(args.path)
    except OSError as e:
        print(f"error: cannot read {args.path}: {e}", file=sys.stderr)
        return EXIT_USAGE

    pipeline = _pipeline()
    print(pipeline.render(raw, only=args.only, as_text=args.text))
    return EXIT_OK


def cmd_list_schemas(_: argparse.Namespace) -> int:
    """List registered block schemas."""

    for schema in default_registry().schemas():
        tags = ",".join(sorted(schema.allowed_tags))
        flags = []
        if schema.primary_child_types:
            flags.append("children=" + ",".join(sorted(schema.primary_child_types)))
        if schema.is_custom_item_structure:
            flags.append("custom-items")
        if schema.is_preformatted:
            flags.append("preformatted")
        print(f"{schema.name}  -> <{schema.output_name}>  tags=[{tags}]  {' '.join(flags)}".rstrip())
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the Blockify API server.

    Security notes:
    - If BLOCKIFY_API_KEYS is set, requests must provide X-Blockify-API-Key.
    - Bind to 127.0.0.1 by default (safer than 0.0.0.0).

    """

    try:
        import uvicorn
    except ImportError as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return EXIT_USAGE

    from blockify.api.server import create_app

    app = create_app()
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=args.log_level)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="blockify", description="Block document normalizer")
    sub = p.add_subparsers(dest="cmd", required=True)

    np = sub.add_parser("normalize", help="Normalize a block document (JSON file or '-')")
    np.add_argument("path", help="Path to JSON document, or '-' for stdin")
    np.add_argument("--dev", action="store_true", help="Fail on malformed JSON instead of emptying")
    np.add_argument("--render", action="store_true", help="Include rendered HTML in the output")
    np.add_argument("--errors-only", action="store_true", help="Print only the error report")
    np.add_argument(
        "--strict", action="store_true", help="Exit with status 1 when validation errors occur"
    )
    np.set_defaults(func=cmd_normalize)

    rp = sub.add_parser("render", help="Normalize then render a block document")
    rp.add_argument("path", help="Path to JSON document, or '-' for stdin")
    rp.add_argument("--only", nargs="+", default=None, metavar="TYPE", help="Block types to render")
    rp.add_argument("--text", action="store_true", help="Emit plain text instead of HTML")
    rp.set_defaults(func=cmd_render)

    lp = sub.add_parser("list-schemas", help="List built-in block schemas")
    lp.set_defaults(func=cmd_list_schemas)

    sv = sub.add_parser("serve", help="Run the Blockify FastAPI server")
    sv.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    sv.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    sv.add_argument("--log-level", default="info", help="Uvicorn log level")
    sv.set_defaults(func=cmd_serve)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
