from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .check import run_check
from .errors import SSLCheckError
from .models import CheckOptions, Target
from .probe import probe_protocol_versions
from .report import render_protocol_section, render_text, to_payload

USAGE = "Usage: sslcheck -host example.com [-port 443] [-timeout 10] [-verbose[=false]]"


def _write_output(out_path: str | None, text: str) -> None:
    if out_path:
        Path(out_path).write_text(text + "\n", encoding="utf-8")
    else:
        print(text)


def _payload_text(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


# Spellings accepted by `-verbose=<bool>`
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {value!r}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sslcheck",
        description="Check TLS protocol support and the certificate chain of a host.",
    )
    p.add_argument("-host", "--host", default="", help="Host to check (e.g., example.com)")
    p.add_argument("-port", "--port", default="443", help="Port to connect to (default: 443)")
    p.add_argument(
        "-timeout",
        "--timeout",
        type=int,
        default=10,
        help="Connection timeout in seconds, 0 for none (default: 10)",
    )
    p.add_argument(
        "-verbose",
        "--verbose",
        nargs="?",
        const=True,
        default=False,
        type=_parse_bool,
        metavar="BOOL",
        help="Show detailed certificate information (-verbose or -verbose=true|false)",
    )
    p.add_argument("--sni", help="Override SNI/server name (default: host)")
    p.add_argument(
        "--store",
        choices=["system", "mozilla"],
        default="system",
        help="Trust store to verify against (default: system)",
    )
    p.add_argument("--json", action="store_true", help="Emit the report as JSON")
    p.add_argument("--out", "-o", help="Write output to file (default: stdout)")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for diagnostics on stderr (default: WARNING)",
    )
    p.add_argument("--version", action="store_true", help="Print version and exit")
    return p


def parse_args(argv: list[str]) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _parse_port(port_s: str) -> int:
    port_s = port_s.strip()
    if not port_s.isdigit():
        raise ValueError("port must be a number")
    port = int(port_s)
    if not (1 <= port <= 65535):
        raise ValueError("port out of range")
    return port


def _build_options(args: argparse.Namespace) -> CheckOptions:
    return CheckOptions(
        timeout_seconds=args.timeout if args.timeout > 0 else None,
        verbose=args.verbose,
        store=args.store,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    if args.version:
        print(__version__)
        return 0

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    host = args.host.strip()
    if not host:
        print("Error: Host is required")
        print(USAGE)
        return 1

    try:
        port = _parse_port(args.port)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    target = Target(host=host, port=port, sni=args.sni or host)
    options = _build_options(args)

    probes = probe_protocol_versions(target, options.timeout_seconds)
    try:
        report = run_check(target, options, probes=probes)
    except SSLCheckError as e:
        if not args.json:
            print("\n".join(render_protocol_section(target, probes)))
        print(f"Error: {e}")
        return 1

    if args.json:
        _write_output(args.out, _payload_text(to_payload(report)))
    else:
        _write_output(args.out, render_text(report, verbose=options.verbose))
    # A failed verification is a finding, not a process error.
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
