"""
WhatsApp Router CLI

Command-line interface for router administration.

Commands:
- init-db: Create the database tables
- add-project: Register a project that can claim phone numbers
- update-project: Change a project's URLs, keys or name
- list-projects: List registered projects
- remove-project: Delete a project (its contacts become unassigned)
- check-number: Ask every project whether it knows a phone number
- send-test: Send a test message
- list-conversations: List conversations with their 24h window
"""

import asyncio
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="whatsapp-router",
    help="WhatsApp Router CLI",
)

console = Console()


def get_db():
    """Get database session."""
    from whatsapp_router.core.db import get_db as _get_db
    return next(_get_db())


def get_engine():
    from whatsapp_router.core.db import get_engine as _get_engine
    return _get_engine()


@app.command()
def init_db():
    """
    Create all router tables that do not exist yet.

    Production deployments should run the Alembic migrations instead.
    """
    from whatsapp_router.core.db import Base
    from whatsapp_router import persistence  # noqa: F401  registers the models

    Base.metadata.create_all(get_engine())
    rprint("[green]Database tables created[/green]")


@app.command()
def add_project(
    name: str = typer.Argument(..., help="Project name"),
    api_url: Optional[str] = typer.Option(None, help="Project API base URL"),
    user_numbers_api_url: Optional[str] = typer.Option(None, help="Membership route, appended to api_url"),
    api_key: Optional[str] = typer.Option(None, help="Key sent to the project's membership route"),
    external_api_key: Optional[str] = typer.Option(None, help="Key the project uses to call us"),
):
    """
    Register a project.

    Projects with both api_url and user_numbers_api_url take part in
    membership detection.
    """
    db = get_db()

    try:
        from whatsapp_router.persistence.repo import RouterRepository

        repo = RouterRepository(db)

        if external_api_key and repo.get_project_by_external_api_key(external_api_key):
            rprint("[yellow]Another project already uses that external API key[/yellow]")
            raise typer.Exit(1)

        project = repo.create_project(
            name=name,
            api_url=api_url,
            user_numbers_api_url=user_numbers_api_url,
            api_key=api_key,
            external_api_key=external_api_key,
        )
        db.commit()

        rprint(f"[green]Successfully created project:[/green]")
        rprint(f"  ID: {project.id}")
        rprint(f"  Name: {project.name}")
        if project.api_url:
            rprint(f"  API URL: {project.api_url}")

    finally:
        db.close()


@app.command()
def update_project(
    project_id: int = typer.Argument(..., help="Project ID"),
    name: Optional[str] = typer.Option(None, help="New project name"),
    api_url: Optional[str] = typer.Option(None, help="Project API base URL"),
    user_numbers_api_url: Optional[str] = typer.Option(None, help="Membership route, appended to api_url"),
    api_key: Optional[str] = typer.Option(None, help="Key sent to the project's membership route"),
    external_api_key: Optional[str] = typer.Option(None, help="Key the project uses to call us"),
):
    """
    Change a project's settings. Only the options given are updated.
    """
    db = get_db()

    try:
        from whatsapp_router.persistence.repo import RouterRepository

        repo = RouterRepository(db)
        project = repo.get_project(project_id)

        if not project:
            rprint(f"[red]No project found with ID: {project_id}[/red]")
            raise typer.Exit(1)

        fields = {
            "name": name,
            "api_url": api_url,
            "user_numbers_api_url": user_numbers_api_url,
            "api_key": api_key,
            "external_api_key": external_api_key,
        }
        fields = {key: value for key, value in fields.items() if value is not None}

        if not fields:
            rprint("[yellow]Nothing to update[/yellow]")
            raise typer.Exit(0)

        if external_api_key:
            other = repo.get_project_by_external_api_key(external_api_key)
            if other and other.id != project.id:
                rprint("[yellow]Another project already uses that external API key[/yellow]")
                raise typer.Exit(1)

        repo.update_project(project, **fields)
        db.commit()

        rprint(f"[green]Project {project.id} updated:[/green] {', '.join(sorted(fields))}")

    finally:
        db.close()


@app.command()
def list_projects():
    """
    List registered projects.
    """
    db = get_db()

    try:
        from whatsapp_router.persistence.repo import RouterRepository
        from whatsapp_router.routing.membership import build_probe_url, is_probe_configured

        projects = RouterRepository(db).list_projects()

        if not projects:
            rprint("[yellow]No projects found[/yellow]")
            raise typer.Exit(0)

        table = Table(title="Projects")
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Membership URL")
        table.add_column("Contacts")

        for project in projects:
            table.add_row(
                str(project.id),
                project.name,
                build_probe_url(project) if is_probe_configured(project) else "-",
                str(len(project.contacts)),
            )

        console.print(table)

    finally:
        db.close()


@app.command()
def remove_project(
    project_id: int = typer.Argument(..., help="Project ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """
    Delete a project. Its contacts become unassigned.
    """
    db = get_db()

    try:
        from whatsapp_router.persistence.repo import RouterRepository

        repo = RouterRepository(db)
        project = repo.get_project(project_id)

        if not project:
            rprint(f"[red]No project found with ID: {project_id}[/red]")
            raise typer.Exit(1)

        if not force:
            confirm = typer.confirm(f"Delete project {project.name}?")
            if not confirm:
                rprint("[yellow]Cancelled[/yellow]")
                raise typer.Exit(0)

        repo.delete_project(project)
        db.commit()

        rprint(f"[green]Project deleted successfully[/green]")

    finally:
        db.close()


@app.command()
def check_number(
    phone: str = typer.Argument(..., help="WhatsApp id, e.g. 5511999999999"),
):
    """
    Ask every configured project whether it knows a phone number.
    """
    db = get_db()

    try:
        from whatsapp_router.core.settings import get_settings
        from whatsapp_router.persistence.repo import RouterRepository
        from whatsapp_router.routing.membership import MembershipResolver

        repo = RouterRepository(db)
        resolver = MembershipResolver(timeout=get_settings().MEMBERSHIP_PROBE_TIMEOUT)

        project_ids = asyncio.run(resolver.resolve(repo.list_projects(), phone))

        if not project_ids:
            rprint(f"[yellow]{phone} is not registered in any project[/yellow]")
            raise typer.Exit(0)

        names = repo.get_project_names(project_ids)
        rprint(f"[green]{phone} is registered in {len(project_ids)} project(s):[/green]")
        for project_id in project_ids:
            rprint(f"  {project_id} - {names.get(project_id, '?')}")

    finally:
        db.close()


@app.command()
def send_test(
    to: str = typer.Argument(..., help="Recipient WhatsApp id"),
    text: str = typer.Option("Hello from WhatsApp Router!", help="Message text"),
):
    """
    Send a test message.

    This sends a message directly via the provider; nothing is stored.
    """
    from whatsapp_router.core.settings import get_settings
    from whatsapp_router.providers import get_provider

    async def send():
        provider = get_provider(get_settings())
        try:
            return await provider.send_text(to=to, text=text)
        finally:
            await provider.close()

    response = asyncio.run(send())

    if response.success:
        rprint(f"[green]Message sent successfully![/green]")
        rprint(f"  Message ID: {response.message_id}")
    else:
        rprint(f"[red]Failed to send message[/red]")
        rprint(f"  Error: {response.error_message}")
        rprint(f"  Code: {response.error_code}")
        raise typer.Exit(1)


@app.command()
def list_conversations(
    limit: int = typer.Option(20, help="Maximum number of conversations to show"),
):
    """
    List conversations, most recent first.
    """
    db = get_db()

    try:
        from whatsapp_router.service.conversations import ConversationService

        summaries = ConversationService(db).list_conversations()[:limit]

        if not summaries:
            rprint("[yellow]No conversations found[/yellow]")
            raise typer.Exit(0)

        table = Table(title="Conversations")
        table.add_column("ID", style="dim")
        table.add_column("Phone")
        table.add_column("Name")
        table.add_column("Project")
        table.add_column("Unread")
        table.add_column("24h")
        table.add_column("Last Message")

        for summary in summaries:
            conv = summary.conversation
            contact = summary.contact
            table.add_row(
                str(conv.id)[:8] + "...",
                contact.wa_id,
                contact.display_name,
                str(contact.project_id) if contact.project_id else "-",
                str(conv.unread_count),
                "Yes" if summary.is_within_24_hours else "No",
                conv.last_message_at.strftime("%Y-%m-%d %H:%M") if conv.last_message_at else "-",
            )

        console.print(table)

    finally:
        db.close()


if __name__ == "__main__":
    app()
