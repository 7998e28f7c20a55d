"""
Interactive portal shell

    /societies/3/dashboard        open a portal path
    events add title=Demo date=2026-03-14
    events edit 12 past date=2026-05-01
    members add name="Asha Rao" role=Chair
    profile edit vision="Connect every student"
    quit
"""

import shlex
from typing import List

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory

from portal.app import CONTENT_SECTIONS, PortalApp, parse_assignments
from portal.exceptions import PortalError

HELP = {
    "open PATH  (or just PATH)": "Open a portal page, e.g. /societies or /councils/2/dashboard",
    "login": "Log in as a society or council admin",
    "logout": "Log out and forget the stored token",
    "whoami": "Show the current session",
    "password": "Change your password",
    "events list": "List your entity's upcoming and past events",
    "events add key=value ...": "Add an event (title and date are required)",
    "events edit ID [past|upcoming] key=value ...": "Edit an event",
    "events delete ID [past|upcoming]": "Delete an event",
    "events reclassify": "Move events whose date has passed into past events",
    "members|achievements|gallery": "List slate members, achievements or gallery items",
    "members|achievements|gallery add key=value ...": "Add a record",
    "members|achievements edit ID key=value ...": "Edit a record",
    "members|achievements|gallery delete ID": "Delete a record",
    "profile": "Show your society or council details",
    "profile edit key=value ...": "Update your society or council details",
    "help": "Show this help",
    "quit": "Exit the shell",
}

BUCKET_NAMES = ("past", "upcoming")


class PortalShell:
    """REPL over a started PortalApp"""

    def __init__(self, app: PortalApp):
        self.app = app
        self._running = True

    def _prompt_text(self) -> HTML:
        session = self.app.gate.session
        who = session.email if session.is_authenticated else "guest"
        return HTML(f"<ansicyan>portal</ansicyan> <ansigray>({who})</ansigray> <b>&gt;</b> ")

    async def run_interactive(self) -> None:
        """Run interactive REPL mode"""
        self.app.renderer.render_landing()
        session = PromptSession(
            history=FileHistory(self.app.config.history_file),
            auto_suggest=AutoSuggestFromHistory(),
            completer=WordCompleter(
                ["open", "login", "logout", "whoami", "password", "events", "help", "quit",
                 "members", "achievements", "gallery", "profile",
                 "list", "add", "edit", "delete", "reclassify", "/societies", "/councils"],
                sentence=True,
            ),
        )

        while self._running:
            try:
                line = await session.prompt_async(self._prompt_text())
                await self.handle(line)
            except KeyboardInterrupt:
                self.app.console.print("\n[dim]Cancelled[/dim]")
                continue
            except EOFError:
                break

        self.app.console.print("\n[dim]Goodbye![/dim]")

    async def handle(self, line: str) -> None:
        """Run one shell command"""
        try:
            words = shlex.split(line)
        except ValueError as e:
            self.app.renderer.render_error(f"Could not parse command: {e}")
            return
        if not words:
            return

        command, args = words[0].lower(), words[1:]
        try:
            if command.startswith("/"):
                await self.app.open(words[0])
            elif command == "open":
                if not args:
                    self.app.renderer.render_error("Usage: open PATH")
                    return
                await self.app.open(args[0])
            elif command == "login":
                result = await self.app.login()
                if result.success:
                    await self.app.open(result.redirect_to)
            elif command == "logout":
                await self.app.logout()
            elif command in ("whoami", "status"):
                self.app.status()
            elif command == "password":
                await self.app.change_password()
            elif command == "events":
                await self._events(args)
            elif command in CONTENT_SECTIONS:
                await self._content(command, args)
            elif command == "profile":
                await self._profile(args)
            elif command == "help":
                self.app.renderer.render_help(HELP)
            elif command in ("quit", "exit", "q"):
                self._running = False
            else:
                self.app.renderer.render_error(f"Unknown command: {command}. Type 'help'.")
        except PortalError as e:
            self.app.renderer.render_error(e.message)

    async def _events(self, args: List[str]) -> None:
        action = args[0].lower() if args else "list"
        rest = args[1:]

        if action == "list":
            await self.app.events_list()
        elif action == "add":
            await self.app.events_add(parse_assignments(rest))
        elif action in ("edit", "delete"):
            if not rest:
                self.app.renderer.render_error(f"Usage: events {action} ID [past|upcoming]")
                return
            event_id, rest = rest[0], rest[1:]
            bucket = None
            if rest and rest[0].lower() in BUCKET_NAMES:
                bucket, rest = rest[0].lower(), rest[1:]
            if action == "edit":
                await self.app.events_edit(event_id, parse_assignments(rest), bucket=bucket)
            else:
                await self.app.events_delete(event_id, bucket=bucket)
        elif action == "reclassify":
            await self.app.events_reclassify()
        else:
            self.app.renderer.render_error(f"Unknown events action: {action}")

    async def _content(self, section: str, args: List[str]) -> None:
        action = args[0].lower() if args else "list"
        rest = args[1:]

        if action == "list":
            await self.app.content_list(section)
        elif action == "add":
            await self.app.content_add(section, parse_assignments(rest))
        elif action in ("edit", "delete"):
            if not rest:
                self.app.renderer.render_error(f"Usage: {section} {action} ID")
                return
            if action == "edit":
                await self.app.content_edit(section, rest[0], parse_assignments(rest[1:]))
            else:
                await self.app.content_delete(section, rest[0])
        else:
            self.app.renderer.render_error(f"Unknown {section} action: {action}")

    async def _profile(self, args: List[str]) -> None:
        if not args or args[0].lower() == "show":
            await self.app.profile_show()
        elif args[0].lower() == "edit":
            await self.app.profile_edit(parse_assignments(args[1:]))
        else:
            self.app.renderer.render_error(f"Unknown profile action: {args[0]}")
