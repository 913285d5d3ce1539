"""
Agent Fleet - CLI entry point.
Provides status, list, launch, switch, heartbeats, and serve subcommands.
"""

import argparse
import json
import logging
import os
import sys

from .commands import build_run_message
from .constants import DEFAULT_PORT, LOCALHOST
from .discovery import discover_fleet, find_worktree, summarize_fleet, time_ago
from .git import NotAProjectError, is_git_repo
from .heartbeat import HeartbeatStore

logger = logging.getLogger(__name__)

NOT_A_REPO_MESSAGE = "Not in a git repository."

STATUS_ICONS = {
    "idle": "○",
    "streaming": "●",
    "executing-tool": "⚙",
}


def _discover_or_exit(args):
    """Run a reconciliation pass, exiting with status 1 outside a git project."""
    if not is_git_repo(args.cwd):
        print(NOT_A_REPO_MESSAGE, file=sys.stderr)
        sys.exit(1)
    try:
        return discover_fleet(args.cwd)
    except NotAProjectError as e:
        logger.debug("Discovery failed in %s: %s", args.cwd, e)
        print(NOT_A_REPO_MESSAGE, file=sys.stderr)
        sys.exit(1)


def _find_or_exit(entries, name):
    target = find_worktree(entries, name)
    if target is None:
        available = ", ".join(e.name for e in entries)
        print(f'Worktree "{name}" not found. Available: {available}', file=sys.stderr)
        sys.exit(1)
    return target


def _format_entry(entry) -> str:
    """One line per worktree for ``list``."""
    hb = entry.heartbeat
    markers = []
    if entry.is_main:
        markers.append("main")
    if entry.is_current:
        markers.append("current")
    tag = f" [{', '.join(markers)}]" if markers else ""

    if hb:
        status = str(hb.status)
        if hb.current_tool:
            status += f": {hb.current_tool}"
        icon = STATUS_ICONS.get(str(hb.status), "?")
        live = f"{icon} PID {hb.pid} {status} ({time_ago(hb.updated_at)})"
    else:
        live = "- no pi"

    history = f"{entry.session_count} session{'s' if entry.session_count != 1 else ''}"
    return f"{entry.name}{tag}  {entry.branch}  {live}  {history}"


def cmd_status(args):
    """Print a one-line fleet summary."""
    entries = _discover_or_exit(args)
    print(summarize_fleet(entries))


def cmd_list(args):
    """List every worktree with live status and session history."""
    entries = _discover_or_exit(args)
    if args.json:
        from .fleet_api import entry_to_dict

        print(json.dumps([entry_to_dict(e) for e in entries], indent=2))
        return
    for entry in entries:
        print(_format_entry(entry))


def cmd_launch(args):
    """Show the command that launches pi in a worktree."""
    entries = _discover_or_exit(args)
    target = _find_or_exit(entries, args.name)
    print(build_run_message(target))


def cmd_switch(args):
    """Show how to move over to another worktree."""
    entries = _discover_or_exit(args)
    target = _find_or_exit(entries, args.name)
    if target.is_current:
        print("You're already in this worktree.")
        return
    print(build_run_message(target, switching=True))


def cmd_heartbeats(args):
    """List every live heartbeat, reclaiming stale ones on the way."""
    from .fleet_api import heartbeat_to_dict

    heartbeats = HeartbeatStore().scan()
    if args.json:
        print(json.dumps([heartbeat_to_dict(hb) for hb in heartbeats], indent=2))
        return
    if not heartbeats:
        print("No live agents.")
        return
    for hb in heartbeats:
        tool = f" ({hb.current_tool})" if hb.current_tool else ""
        print(f"PID {hb.pid}  {hb.worktree_name}  {hb.status}{tool}  {hb.cwd}")


def cmd_serve(args):
    """Run the read-only fleet API in the foreground."""
    import uvicorn

    from .fleet_api import app

    app.state.project_dir = args.cwd
    print(f"Agent Fleet API for {args.cwd}\nOpen http://localhost:{args.port}/docs")
    uvicorn.run(app, host=LOCALHOST, port=args.port, log_level="warning")


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="agent-fleet",
        description="Agent Fleet - see every pi agent across your git worktrees",
        epilog=(
            "Examples:\n"
            "  agent-fleet status              One-line summary\n"
            "  agent-fleet list                All worktrees with live status\n"
            "  agent-fleet launch auth         Command to start pi in 'auth'\n"
            "  agent-fleet switch auth         Command to move to 'auth'\n"
            "  agent-fleet serve --port 8080   Serve the JSON API\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--cwd", default=os.getcwd(), help="Directory inside the project (default: current)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Quick summary of the fleet")

    list_p = sub.add_parser("list", help="List all worktrees")
    list_p.add_argument("--json", action="store_true", help="Print JSON instead of text")

    launch_p = sub.add_parser("launch", help="Show command to launch pi in a worktree")
    launch_p.add_argument("name", help="Worktree name, name fragment, or branch fragment")

    switch_p = sub.add_parser("switch", help="Show command to switch to a worktree")
    switch_p.add_argument("name", help="Worktree name, name fragment, or branch fragment")

    hb_p = sub.add_parser("heartbeats", help="List every live agent heartbeat")
    hb_p.add_argument("--json", action="store_true", help="Print JSON instead of text")

    serve_p = sub.add_parser("serve", help="Serve the read-only JSON API")
    serve_p.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to listen on (default: {DEFAULT_PORT})",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.cwd = os.path.abspath(args.cwd)

    if not args.command:
        parser.print_help()
        return

    {
        "status": cmd_status,
        "list": cmd_list,
        "launch": cmd_launch,
        "switch": cmd_switch,
        "heartbeats": cmd_heartbeats,
        "serve": cmd_serve,
    }[args.command](args)


if __name__ == "__main__":
    main()
