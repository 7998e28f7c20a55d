#!/usr/bin/env python3
"""
IEEE Chapter Portal CLI - Main Entry Point

Usage:
    chapter-portal                          # Start the interactive shell
    chapter-portal login                    # Log in as a society/council admin
    chapter-portal open /societies          # Render a portal page
    chapter-portal events list              # Your entity's events
    chapter-portal --help                   # Show help
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import httpx
from rich.console import Console

from portal import __version__
from portal.app import CONTENT_SECTIONS, PortalApp, parse_assignments
from portal.auth import Allow
from portal.config import PortalConfig
from portal.exceptions import PortalError
from portal.logging_config import setup_logging
from portal.results import OperationResult


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="chapter-portal",
        description="Admin client for the IEEE student chapter website",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  chapter-portal login                                  Login to your admin account
  chapter-portal status                                 Check login status
  chapter-portal open /societies                        List all societies
  chapter-portal open /societies/3/dashboard            Open your dashboard
  chapter-portal events add title="Workshop" date=2026-11-02 venue="Lab 4"
  chapter-portal events edit 12 date=2026-12-01 --bucket upcoming
  chapter-portal events reclassify                      Move finished events to past
  chapter-portal members add name="Asha Rao" role=Chair
  chapter-portal profile edit vision="Connect every student"
  chapter-portal                                        Start the interactive shell

Environment:
  PORTAL_API_URL      Backend base URL (default http://localhost:8081/api)
  PORTAL_TIMEZONE     IANA timezone that decides what "today" is for events
  PORTAL_CONFIG_DIR   Where credentials.json and config.json live
        """
    )

    parser.add_argument(
        "--server-url",
        help="Backend API base URL"
    )
    parser.add_argument(
        "--config",
        help="Path to a JSON config file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output (debug logging)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"chapter-portal {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    login_parser = subparsers.add_parser("login", help="Login to the portal")
    login_parser.add_argument("--email", "-e", help="Account email (prompted if omitted)")

    subparsers.add_parser("logout", help="Logout and forget the stored token")
    subparsers.add_parser("status", help="Show authentication status")
    subparsers.add_parser("whoami", help="Show current user info")
    subparsers.add_parser("password", help="Change your password")

    open_parser = subparsers.add_parser("open", help="Open a portal path")
    open_parser.add_argument("path", help="Portal path, e.g. /councils/2")
    open_parser.add_argument(
        "--no-login",
        action="store_true",
        help="Do not prompt for a login when the page requires one"
    )

    events_parser = subparsers.add_parser("events", help="Manage your entity's events")
    events_sub = events_parser.add_subparsers(dest="events_command")
    events_sub.add_parser("list", help="List upcoming and past events")

    add_parser = events_sub.add_parser("add", help="Add an event")
    add_parser.add_argument("fields", nargs="+", metavar="KEY=VALUE")

    edit_parser = events_sub.add_parser("edit", help="Edit an event")
    edit_parser.add_argument("event_id")
    edit_parser.add_argument("fields", nargs="+", metavar="KEY=VALUE")
    edit_parser.add_argument("--bucket", choices=["past", "upcoming"])

    delete_parser = events_sub.add_parser("delete", help="Delete an event")
    delete_parser.add_argument("event_id")
    delete_parser.add_argument("--bucket", choices=["past", "upcoming"])

    events_sub.add_parser("reclassify", help="Move events into the right list by date")

    content_nouns = {"members": "slate member", "achievements": "achievement", "gallery": "gallery item"}
    for section, noun in content_nouns.items():
        section_parser = subparsers.add_parser(section, help=f"Manage your entity's {noun}s")
        section_sub = section_parser.add_subparsers(dest="content_command")
        section_sub.add_parser("list", help=f"List {noun}s")
        add = section_sub.add_parser("add", help=f"Add a {noun}")
        add.add_argument("fields", nargs="+", metavar="KEY=VALUE")
        if section != "gallery":
            edit = section_sub.add_parser("edit", help=f"Edit a {noun}")
            edit.add_argument("record_id")
            edit.add_argument("fields", nargs="+", metavar="KEY=VALUE")
        delete = section_sub.add_parser("delete", help=f"Delete a {noun}")
        delete.add_argument("record_id")

    profile_parser = subparsers.add_parser("profile", help="Show or update your entity's details")
    profile_sub = profile_parser.add_subparsers(dest="profile_command")
    profile_sub.add_parser("show", help="Show the current details")
    profile_edit = profile_sub.add_parser("edit", help="Update details")
    profile_edit.add_argument("fields", nargs="+", metavar="KEY=VALUE")

    subparsers.add_parser("shell", help="Start the interactive shell")

    return parser


def build_config(args: argparse.Namespace) -> PortalConfig:
    config = PortalConfig.load_default()
    if args.config:
        config.load_from_file(args.config)
        config.validate()
    if args.server_url:
        config.api_base_url = args.server_url
    if args.verbose:
        config.verbose = True
    return config


def _exit_code(result) -> int:
    if isinstance(result, OperationResult):
        return 0 if result.success else 1
    return 0 if result is not None else 1


async def run_command(
    args: argparse.Namespace,
    config: PortalConfig,
    console: Console,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """Run one CLI command against a freshly started app; returns the exit code"""
    async with PortalApp(config, console=console, transport=transport) as app:
        command = args.command or "shell"

        if command == "login":
            result = await app.login(email=args.email)
            if result.success:
                console.print(f"Your dashboard: [cyan]{result.redirect_to}[/cyan]")
            return 0 if result.success else 1

        if command == "logout":
            await app.logout()
            return 0

        if command in ("status", "whoami"):
            app.status()
            return 0

        if command == "password":
            return _exit_code(await app.change_password())

        if command == "open":
            decision = await app.open(args.path, interactive=not args.no_login)
            return 0 if isinstance(decision, Allow) else 1

        if command == "events":
            action = args.events_command or "list"
            if action == "list":
                return _exit_code(await app.events_list())
            if action == "add":
                return _exit_code(await app.events_add(parse_assignments(args.fields)))
            if action == "edit":
                return _exit_code(await app.events_edit(
                    args.event_id, parse_assignments(args.fields), bucket=args.bucket
                ))
            if action == "delete":
                return _exit_code(await app.events_delete(args.event_id, bucket=args.bucket))
            if action == "reclassify":
                return _exit_code(await app.events_reclassify())

        if command in CONTENT_SECTIONS:
            action = args.content_command or "list"
            if action == "list":
                return _exit_code(await app.content_list(command))
            if action == "add":
                return _exit_code(await app.content_add(command, parse_assignments(args.fields)))
            if action == "edit":
                return _exit_code(await app.content_edit(
                    command, args.record_id, parse_assignments(args.fields)
                ))
            if action == "delete":
                return _exit_code(await app.content_delete(command, args.record_id))

        if command == "profile":
            if args.profile_command == "edit":
                return _exit_code(await app.profile_edit(parse_assignments(args.fields)))
            return _exit_code(await app.profile_show())

        from portal.shell import PortalShell
        await PortalShell(app).run_interactive()
        return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except PortalError as e:
        Console().print(f"[red]✗ {e.message}[/red]")
        sys.exit(1)

    setup_logging(
        level="DEBUG" if config.verbose else config.log_level,
        environment=config.environment,
        log_file=config.log_file,
    )

    console = Console()

    try:
        code = asyncio.run(run_command(args, config, console))
    except KeyboardInterrupt:
        console.print("\n\nGoodbye!")
        sys.exit(0)
    except PortalError as e:
        console.print(f"\n[red]✗ {e.message}[/red]")
        sys.exit(1)
    except Exception as e:
        if config.verbose:
            console.print_exception()
        else:
            console.print(f"\n[red]✗ Error: {e}[/red]")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
