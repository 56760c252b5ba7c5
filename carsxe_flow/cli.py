"""carsxe-flow CLI - inspect the operation catalog and call CarsXE from the terminal.

Usage::

    carsxe-flow list                                  # operations, flat
    carsxe-flow list --grouped                        # operations by resource
    carsxe-flow show specs                            # bindings of one operation

    carsxe-flow run specs --vin WBAFR7C57CC811956     # one request
    carsxe-flow run plate_decode --plate 7XER187 --state CA
    carsxe-flow run vehicle_images --make BMW --model X5 --transparent
    carsxe-flow run --raw --api-key KEY history --vin WBAFR7C57CC811956

    carsxe-flow batch items.json                      # one request per item
    cat items.json | carsxe-flow batch - --strict

    carsxe-flow verify                                # check the API key

The API key comes from ``--api-key`` or ``CARSXE_API_KEY``.  For ``run``,
options of the command itself go before the operation name; everything
after it is read as operation fields.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List

from .catalog import RESOURCES, Catalog
from .config import Settings
from .credentials import ApiKeyCredentials
from .dispatcher import Dispatcher
from .exceptions import CarsXEError, ConfigurationError


def _settings(args) -> Settings:
    return Settings.from_env().with_overrides(api_key=getattr(args, "api_key", None))


def _make_dispatcher(args) -> Dispatcher:
    """Build the dispatcher used by ``run``, ``batch`` and ``verify``."""
    return Dispatcher(settings=_settings(args))


# ---------------------------------------------------------------------------
# list / show
# ---------------------------------------------------------------------------


def cmd_list(args):
    """List catalog operations, flat or grouped by resource."""
    catalog = Catalog(_settings(args).variant)

    if getattr(args, "json", False):
        if args.grouped:
            data = {r: [s.to_dict() for s in specs] for r, specs in catalog.grouped().items()}
        else:
            data = [s.to_dict() for s in catalog.flat()]
        print(json.dumps(data, indent=2))
        return

    if args.grouped:
        for resource, specs in catalog.grouped().items():
            print(f"  {RESOURCES[resource]}")
            for spec in specs:
                print(f"    {spec.key:<26} {spec.method:<5} {spec.path}")
            print()
        return

    hdr = f"  {'Operation':<26} {'Method':<6} {'Path':<32} {'Resource'}"
    print(hdr)
    print("  " + "─" * (len(hdr) - 2))
    for spec in catalog.flat():
        print(f"  {spec.key:<26} {spec.method:<6} {spec.path:<32} {spec.resource}")
    print()
    print(f"  {len(catalog)} operations")


def cmd_show(args):
    """Show the bindings of one operation."""
    catalog = Catalog(_settings(args).variant)
    spec = catalog.find(None, args.operation)
    if spec is None:
        print(f"Operation not found: {args.operation}", file=sys.stderr)
        matches = [k for k in catalog.keys() if args.operation.lower() in k]
        if matches:
            print(f"Did you mean: {', '.join(matches[:5])}", file=sys.stderr)
        sys.exit(1)

    print(f"  {spec.display_name}")
    print(f"  {spec.description}")
    print()
    print(f"  Key:      {spec.key}")
    print(f"  Resource: {spec.resource} ({RESOURCES[spec.resource]})")
    print(f"  Request:  {spec.method} {spec.path}")
    if spec.aliases:
        print(f"  Aliases:  {', '.join(spec.aliases)}")
    print()
    print("  Parameters:")
    for b in spec.bindings:
        flag = "required" if b.required else "optional"
        extra = ""
        if b.default is not None:
            extra = f" (default {b.default})"
        elif b.choices:
            extra = f" ({' | '.join(b.choices)})"
        print(f"    --{b.source:<26} {b.kind.value:<8} {flag}{extra}")


# ---------------------------------------------------------------------------
# run / batch / verify
# ---------------------------------------------------------------------------


def _parse_extra_args(extra: List[str]) -> Dict[str, Any]:
    """Parse ['--key', 'value', '--flag', ...] into a dict."""
    kwargs = {}
    i = 0
    while i < len(extra):
        arg = extra[i]
        if arg.startswith("--"):
            key = arg[2:].replace("-", "_")
            if i + 1 < len(extra) and not extra[i + 1].startswith("--"):
                kwargs[key] = extra[i + 1]
                i += 2
            else:
                kwargs[key] = True
                i += 1
        else:
            i += 1
    return kwargs


def _pretty_print_record(record: Any):
    """Pretty-print one output record."""
    if isinstance(record, dict):
        for key, val in record.items():
            if key.startswith("_"):
                continue
            if isinstance(val, (list, dict)):
                print(f"  {key}:")
                formatted = json.dumps(val, indent=4, default=str)
                for line in formatted.split("\n"):
                    print(f"    {line}")
            else:
                print(f"  {key}: {val}")
    elif isinstance(record, list):
        print(json.dumps(record, indent=2, default=str))
    else:
        print(record)


def cmd_run(args):
    """Run one operation with --field value parameters."""
    params = _parse_extra_args(args.extra)
    params["operation"] = args.operation
    dispatcher = _make_dispatcher(args)

    results = asyncio.run(
        dispatcher.run([params], continue_on_fail=True, resource=args.resource)
    )
    result = results[0]
    record = result.to_record()

    if args.raw:
        stream = sys.stderr if result.failed else sys.stdout
        print(json.dumps(record, indent=2, default=str), file=stream)
    elif result.failed:
        print(f"  Error: {result.error_message()}", file=sys.stderr)
    else:
        _pretty_print_record(record)

    if result.failed:
        sys.exit(1)


def _read_items(path: str) -> List[Dict[str, Any]]:
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ConfigurationError("Batch input must be a JSON object or a list of objects")
    return data


def cmd_batch(args):
    """Run one request per item of a JSON file and print the records."""
    dispatcher = _make_dispatcher(args)
    try:
        items = _read_items(args.file)
        records = asyncio.run(
            dispatcher.run_records(items, continue_on_fail=not args.strict, resource=args.resource)
        )
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Error: cannot read batch input {args.file}: {exc}", file=sys.stderr)
        sys.exit(1)
    except CarsXEError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        if exc.description:
            print(exc.description, file=sys.stderr)
        sys.exit(1)
    print(json.dumps(records, indent=2, default=str))


def cmd_verify(args):
    """Check the configured API key against the credential test request."""
    dispatcher = _make_dispatcher(args)
    api_key = dispatcher.settings.api_key
    if not api_key:
        print("No API key configured. Pass --api-key or set CARSXE_API_KEY.", file=sys.stderr)
        sys.exit(1)

    credentials = ApiKeyCredentials(api_key)
    result = asyncio.run(credentials.verify(dispatcher))
    if result.failed:
        print(f"  {credentials!r} rejected: {result.error_message()}", file=sys.stderr)
        sys.exit(1)
    print(f"  {credentials!r} OK")


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="carsxe-flow",
        description="carsxe-flow - CarsXE vehicle data from the command line",
    )
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log requests to stderr")
    sub = parser.add_subparsers(dest="command")

    # --- list ---
    p_list = sub.add_parser("list", help="List operations")
    p_list.add_argument("--grouped", action="store_true", help="Group operations by resource")
    p_list.add_argument("--json", action="store_true", help="Output as JSON")

    # --- show ---
    p_show = sub.add_parser("show", help="Show the parameters of an operation")
    p_show.add_argument("operation", help="Operation key or alias")

    # --- run ---
    p_run = sub.add_parser("run", help="Run one operation")
    p_run.add_argument("operation", help="Operation key or alias")
    p_run.add_argument("--api-key", dest="api_key", help="CarsXE API key")
    p_run.add_argument("--resource", help="Require the operation to belong to this resource")
    p_run.add_argument("--raw", action="store_true", help="Output the raw JSON record")
    p_run.add_argument("extra", nargs=argparse.REMAINDER, help="Operation fields as --field value")

    # --- batch ---
    p_batch = sub.add_parser("batch", help="Run one request per item of a JSON file")
    p_batch.add_argument("file", help="JSON file with a list of items, or - for stdin")
    p_batch.add_argument("--api-key", dest="api_key", help="CarsXE API key")
    p_batch.add_argument("--resource", help="Resource for every item")
    p_batch.add_argument("--strict", action="store_true", help="Stop at the first failed item")

    # --- verify ---
    p_verify = sub.add_parser("verify", help="Check the API key")
    p_verify.add_argument("--api-key", dest="api_key", help="CarsXE API key")

    return parser


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from . import __version__
        print(f"carsxe-flow {__version__}")
        return

    if args.verbose:
        logging.basicConfig(
            stream=sys.stderr,
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    if args.command is None:
        parser.print_help()
        return

    commands = {
        "list": cmd_list,
        "show": cmd_show,
        "run": cmd_run,
        "batch": cmd_batch,
        "verify": cmd_verify,
    }

    handler = commands.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
