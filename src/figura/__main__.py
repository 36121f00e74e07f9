from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from .core.codec import generate
from .core.errors import UnknownSourceError
from .core.session import ChoreographySession
from .core.settings import load_settings
from .io.bvh import load_bvh
from .runtime.app import register_sources_dir
from .runtime.server import run


def _source_arg(value: str) -> tuple[str, Path]:
    name, sep, path = value.partition("=")
    if not sep or not name or not path:
        raise argparse.ArgumentTypeError("expected NAME=PATH.bvh")
    return name, Path(path)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="figura", description="figura: motion script compiler")
    p.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="serve the compile API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--sources-dir", type=Path, default=None, help="register every *.bvh in this directory")

    exp = sub.add_parser("expand", help="expand a script to low-level keyframe text")
    exp.add_argument("script", type=Path)
    exp.add_argument("--source", type=_source_arg, action="append", default=[], metavar="NAME=PATH.bvh")

    gen = sub.add_parser("generate", help="print low-level keyframe text for a BVH file")
    gen.add_argument("bvh", type=Path)
    gen.add_argument("--interval", type=float, default=None)

    return p


def main(argv: list[str] | None = None) -> None:
    p = _build_parser()
    args = p.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper()))

    try:
        settings = load_settings()
    except ValueError as e:
        p.error(str(e))

    if args.command == "generate":
        try:
            data = load_bvh(args.bvh)
            sys.stdout.write(generate(data.motion, args.interval))
        except (OSError, ValueError) as e:
            p.error(str(e))
        return

    if args.command == "expand":
        session = ChoreographySession(settings)
        try:
            if settings.sources_dir is not None:
                register_sources_dir(session, settings.sources_dir)
            for name, path in args.source:
                session.load_motion(name, load_bvh(path, name=name).motion)
            sys.stdout.write(session.expand_script(args.script.read_text(encoding="utf-8")))
        except (OSError, ValueError, UnknownSourceError) as e:
            p.error(str(e))
        return

    if args.sources_dir is not None:
        if not args.sources_dir.is_dir():
            p.error(f"--sources-dir is not a directory: {args.sources_dir}")
        settings = replace(settings, sources_dir=args.sources_dir)

    srv = run(host=args.host, port=args.port, settings=settings, log_level=args.log_level)
    print(srv.url)

    # Block forever (so it behaves like a normal CLI server)
    while True:
        time.sleep(3600)


if __name__ == "__main__":
    main()
