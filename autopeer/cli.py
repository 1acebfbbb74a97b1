"""
AutoPeer CLI - operate the DN42 auto-peering service.

Commands:
  autopeer serve            - Start the peering API server (foreground)
  autopeer status           - Query a running API server
  autopeer list             - List verified peerings and their state
  autopeer addresses ASN    - Show the tunnel addressing derived for a peer ASN
  autopeer registry sync    - Clone or update the local DN42 registry checkout
  autopeer registry lookup  - Show the PGP fingerprints registered for an ASN
  autopeer keygen           - Generate a WireGuard keypair

Configuration comes from the environment (see autopeer.config).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys


def _load_config():
    from autopeer.config import AppConfig, ConfigurationError

    try:
        return AppConfig.from_env()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _parse_asn(value: str) -> int:
    """argparse type: accepts 4242420257 or AS4242420257."""
    digits = value[2:] if value.upper().startswith("AS") else value
    if not digits.isdigit():
        raise argparse.ArgumentTypeError(f"not an ASN: {value!r}")
    return int(digits)


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the peering API server."""
    from autopeer.api import run_api

    config = _load_config()
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    run_api(config)


def cmd_status(args: argparse.Namespace) -> None:
    """Show the banner of a running API server."""
    import urllib.error
    import urllib.request

    url = f"http://{args.host}:{args.port}/"
    try:
        req = urllib.request.Request(url, method="GET")
        with urllib.request.urlopen(req, timeout=5) as resp:
            data = json.loads(resp.read().decode())
    except urllib.error.URLError as e:
        print(f"Error: Cannot reach API at {url}: {e.reason}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"AutoPeer API - {url}")
    print(f"  version: {data.get('version', '?')}")
    print(f"  asn:     AS{data.get('asn', '?')}")


def cmd_list(args: argparse.Namespace) -> None:
    """List verified peerings."""
    from autopeer.store import PeeringState, PeeringStore

    config = _load_config()
    store = PeeringStore(config.pending_dir, config.verified_dir)
    asns = store.list_verified()

    if not asns:
        print("No verified peerings.")
        return

    print(f"{len(asns)} peering(s)\n")
    for asn in asns:
        state = store.get_state(asn) or PeeringState.VERIFIED
        print(f"  AS{asn:<12} {state.value}")


def cmd_addresses(args: argparse.Namespace) -> None:
    """Print interface, port and link-local addresses for a peer ASN."""
    from autopeer import DEFAULT_LOCAL_ASN
    from autopeer.errors import BadRequest
    from autopeer.ipalloc import derive_addresses, interface_name, listen_port, protocol_name
    from autopeer.validation import validate_asn

    local_asn = args.local_asn or DEFAULT_LOCAL_ASN
    try:
        validate_asn(args.asn)
        validate_asn(local_asn)
    except BadRequest as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    addrs = derive_addresses(local_asn, args.asn)
    print(f"AS{local_asn} <-> AS{args.asn}")
    print(f"  interface:   {interface_name(args.asn)}")
    print(f"  listen port: {listen_port(args.asn)}")
    print(f"  local:       {addrs.local}")
    print(f"  neighbor:    {addrs.peer}")
    print(f"  protocol:    {protocol_name(args.asn)}")


def cmd_registry_sync(args: argparse.Namespace) -> None:
    """Clone or pull the DN42 registry."""
    from autopeer.registry import RegistrySync, RegistrySyncError

    config = _load_config()
    reg = config.registry
    sync = RegistrySync(reg.path, url=reg.url, username=reg.username, token=reg.token)
    try:
        sync.sync()
    except RegistrySyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Registry up to date at {reg.path}")


def cmd_registry_lookup(args: argparse.Namespace) -> None:
    """Show maintainers and fingerprints for an ASN."""
    from autopeer.registry import Registry, RegistryError

    config = _load_config()
    registry = Registry(config.registry.path)
    try:
        as_object = registry.lookup_as_object(args.asn)
        fingerprints = registry.lookup_fingerprints(args.asn)
    except RegistryError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    print(f"AS{args.asn}  {as_object.as_name}")
    if as_object.descr:
        print(f"  descr:  {as_object.descr}")
    print(f"  mnt-by: {', '.join(as_object.mnt_by)}")
    if not fingerprints:
        print("  (no PGP fingerprint registered)")
    for fp in fingerprints:
        print(f"  pgp:    {fp}")


def cmd_keygen(args: argparse.Namespace) -> None:
    """Generate a WireGuard keypair."""
    from autopeer.deploy import generate_keypair

    private_key, public_key = generate_keypair()
    if args.public_only:
        print(public_key)
        return
    print(f"PrivateKey = {private_key}")
    print(f"PublicKey  = {public_key}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="autopeer",
        description="AutoPeer - automated DN42 peering over WireGuard and BIRD.",
    )
    from autopeer import API_DEFAULT_HOST, API_DEFAULT_PORT, __version__
    parser.add_argument("--version", action="version", version=f"autopeer {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    sub = parser.add_subparsers(dest="command")

    # serve
    p_serve = sub.add_parser("serve", help="Start the peering API server")
    p_serve.add_argument("--host", help="Bind address (overrides BIND_ADDRESS)")
    p_serve.add_argument("--port", type=int, help="Listen port (overrides BIND_ADDRESS)")

    # status
    p_status = sub.add_parser("status", help="Query a running API server")
    p_status.add_argument("--host", default=API_DEFAULT_HOST, help=f"API host (default: {API_DEFAULT_HOST})")
    p_status.add_argument("--port", type=int, default=API_DEFAULT_PORT, help=f"API port (default: {API_DEFAULT_PORT})")

    # list
    sub.add_parser("list", help="List verified peerings")

    # addresses
    p_addr = sub.add_parser("addresses", help="Show derived tunnel addressing for a peer")
    p_addr.add_argument("asn", type=_parse_asn, help="Peer ASN")
    p_addr.add_argument("--local-asn", type=_parse_asn, help="Local ASN (default: MY_ASN default)")

    # registry (with subcommands)
    p_reg = sub.add_parser("registry", help="DN42 registry checkout")
    reg_sub = p_reg.add_subparsers(dest="registry_command")
    reg_sub.add_parser("sync", help="Clone or update the registry")
    p_rl = reg_sub.add_parser("lookup", help="Show registered PGP fingerprints for an ASN")
    p_rl.add_argument("asn", type=_parse_asn, help="ASN to look up")

    # keygen
    p_kg = sub.add_parser("keygen", help="Generate a WireGuard keypair")
    p_kg.add_argument("--public-only", action="store_true", help="Print only the public key")

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1 or args.command == "serve":
        level = logging.INFO
    if args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not args.command:
        print("AutoPeer - automated DN42 peering")
        print()
        print("Usage:")
        print("  autopeer serve [--host ADDR] [--port N]")
        print("  autopeer status [--host ADDR] [--port N]")
        print("  autopeer list")
        print("  autopeer addresses <asn> [--local-asn ASN]")
        print("  autopeer registry sync")
        print("  autopeer registry lookup <asn>")
        print("  autopeer keygen [--public-only]")
        print()
        print("Run 'autopeer <command> --help' for details on any command.")
        sys.exit(0)

    # Handle registry subcommands
    if args.command == "registry":
        registry_commands = {
            "sync": cmd_registry_sync,
            "lookup": cmd_registry_lookup,
        }
        rc = getattr(args, "registry_command", None)
        if not rc:
            print("Usage: autopeer registry {sync|lookup}")
            sys.exit(0)
        registry_commands[rc](args)
        return

    commands = {
        "serve": cmd_serve,
        "status": cmd_status,
        "list": cmd_list,
        "addresses": cmd_addresses,
        "keygen": cmd_keygen,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
