"""
Portal Renderer - terminal output for portal pages

Every page of the chapter site has a render_* method here; nothing in this
module talks to the backend.
"""

from typing import Dict, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from portal.dashboard import DashboardOverview
from portal.schemas import Achievement, EntityProfile, EventRecord, GalleryItem, SlateMember
from portal.session import EntityKind, Session


def _text(value) -> str:
    return "" if value is None else str(value)


class PortalRenderer:
    """Renders portal pages with rich"""

    def __init__(self, console: Console):
        self.console = console

    # ==================== Messages ====================

    def render_error(self, message: str, details: Optional[str] = None):
        """Render an error message"""
        error_panel = Panel(
            f"[bold red]{escape(message)}[/bold red]" +
            (f"\n\n[dim]{escape(details)}[/dim]" if details else ""),
            title="[red]Error[/red]",
            border_style="red"
        )
        self.console.print(error_panel)

    def render_warning(self, message: str):
        self.console.print(f"[yellow]⚠️  {escape(message)}[/yellow]")

    def render_success(self, message: str):
        self.console.print(f"[green]✓ {escape(message)}[/green]")

    def render_info(self, message: str):
        self.console.print(f"[blue]ℹ️  {escape(message)}[/blue]")

    def render_help(self, commands: Dict[str, str]):
        """Render help table"""
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Command", style="cyan")
        table.add_column("Description")

        for cmd, desc in commands.items():
            table.add_row(escape(cmd), escape(desc))

        self.console.print(Panel(table, title="Commands", border_style="blue"))

    # ==================== Session pages ====================

    def render_status(self, session: Session):
        """Show current authentication status"""
        if session.is_authenticated:
            self.console.print(Panel(
                f"[green]Authenticated[/green]\n\n"
                f"[bold]Name:[/bold] {session.name or '-'}\n"
                f"[bold]Email:[/bold] {session.email or '-'}\n"
                f"[bold]Role:[/bold] {session.raw_role or session.role.value}\n"
                f"[bold]Entity:[/bold] {session.entity_id or 'None'}",
                title="Authentication Status",
                border_style="green"
            ))
        else:
            self.console.print(Panel(
                "[red]Not authenticated[/red]\n\n"
                "Please login using: [cyan]chapter-portal login[/cyan]",
                title="Authentication Status",
                border_style="red"
            ))

    def render_landing(self):
        self.console.print(Panel(
            "[bold cyan]IEEE Student Chapter Portal[/bold cyan]\n\n"
            "[cyan]/societies[/cyan]   technical societies\n"
            "[cyan]/councils[/cyan]    councils\n"
            "[cyan]/login[/cyan]       admin login",
            border_style="cyan"
        ))

    def render_unauthorized(self):
        self.console.print(Panel(
            "[bold red]Access Denied[/bold red]\n\n"
            "You don't have permission to view this page.\n"
            "Admins can only manage their own society or council.",
            title="Unauthorized",
            border_style="red"
        ))

    def render_not_found(self, path: str):
        self.render_error("Page not found", details=path)

    # ==================== Directory ====================

    def render_entity_list(self, kind: EntityKind, entities: Sequence[EntityProfile]):
        title = "Societies" if kind is EntityKind.SOCIETY else "Councils"
        if not entities:
            self.render_info(f"No {title.lower()} to show")
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Name", style="white")
        table.add_column("Description")

        for entity in entities:
            table.add_row(_text(entity.id), entity.name, _text(entity.description))

        self.console.print(table)

    def render_entity(self, kind: EntityKind, profile: EntityProfile):
        lines = [f"[bold]{profile.name}[/bold]"]
        if profile.description:
            lines += ["", profile.description]
        for label, value in (("Vision", profile.vision), ("Mission", profile.mission),
                             ("Established", profile.established_year),
                             ("Members", profile.member_count)):
            if value not in (None, ""):
                lines.append(f"[bold]{label}:[/bold] {value}")
        self.console.print(Panel(
            "\n".join(lines),
            title=f"{kind.value.capitalize()} {_text(profile.id)}",
            border_style="cyan"
        ))

    # ==================== Content tables ====================

    def render_events(self, title: str, events: Sequence[EventRecord]):
        if not events:
            self.render_info(f"No {title.lower()}")
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Date", width=12)
        table.add_column("Title", style="white")
        table.add_column("Venue")

        for event in events:
            table.add_row(
                _text(event.id),
                event.date.isoformat() if event.date else "[dim]no date[/dim]",
                event.title,
                _text(event.venue or event.location),
            )

        self.console.print(table)

    def render_members(self, members: Sequence[SlateMember]):
        if not members:
            self.render_info("No slate members")
            return

        table = Table(title="Slate Members", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Name", style="white")
        table.add_column("Position")
        table.add_column("Email")

        for member in members:
            table.add_row(_text(member.id), member.name, member.role, _text(member.email))

        self.console.print(table)

    def render_achievements(self, achievements: Sequence[Achievement]):
        if not achievements:
            self.render_info("No achievements")
            return

        table = Table(title="Achievements", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Title", style="white")
        table.add_column("Category")
        table.add_column("Achieved By")
        table.add_column("Date")

        for item in achievements:
            table.add_row(
                _text(item.id),
                item.title,
                _text(item.category),
                _text(item.achieved_by),
                _text(item.achieved_date),
            )

        self.console.print(table)

    def render_gallery(self, items: Sequence[GalleryItem]):
        if not items:
            self.render_info("No gallery items")
            return

        table = Table(title="Gallery", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Title", style="white")
        table.add_column("Image URL")
        table.add_column("Public", justify="center", width=8)

        for item in items:
            table.add_row(
                _text(item.id),
                _text(item.title),
                item.image_url,
                "[green]✓[/green]" if item.is_public else "[dim]○[/dim]",
            )

        self.console.print(table)

    # ==================== Dashboard ====================

    def render_overview(self, kind: EntityKind, overview: DashboardOverview):
        counts = overview.counts
        stats = Table(show_header=False, box=None, padding=(0, 2))
        stats.add_column("Stat", style="cyan")
        stats.add_column("Count", justify="right")
        stats.add_row("Slate members", str(counts["members"]))
        stats.add_row("Upcoming events", str(counts["upcoming_events"]))
        stats.add_row("Past events", str(counts["past_events"]))
        stats.add_row("Achievements", str(counts["achievements"]))
        stats.add_row("Gallery items", str(counts["gallery"]))

        self.console.print(Panel(
            stats,
            title=f"[bold]{overview.name or kind.value.capitalize()} Dashboard[/bold]",
            border_style="green"
        ))
        self.render_events("Upcoming Events", overview.upcoming[:5])
        self.render_events("Recent Past Events", overview.past[:5])

    def render_settings(self, session: Session, profile: Optional[EntityProfile]):
        self.render_status(session)
        if profile is not None:
            self.console.print(f"[dim]Managing:[/dim] {profile.name}")
        self.console.print("[dim]Use 'password' to change your password.[/dim]")


def bucket_title(bucket_value: str) -> str:
    return "Past Events" if bucket_value == "past" else "Upcoming Events"


