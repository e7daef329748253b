"""
Main Command-Line Interface for gplus.

Authorizes against Google+ with the installed-application OAuth flow and
runs the read-only API calls: people search, activity listing, activity
lookup and profile lookup.
"""
from __future__ import annotations

import webbrowser
from typing import Any, Callable, Dict, Iterable

import requests
import typer
from rich.console import Console
from rich.table import Table
from typer import Argument, Option

from gplus.application import services
from gplus.application.exceptions import AuthorizationError, ConfigurationError, PlusApiError
from gplus.cli.auth_status import determine_credential_status
from gplus.config import settings
from gplus.infrastructure import log_utils
from gplus.infrastructure.plus_client import PlusClient

console = Console()

app = typer.Typer(
    name="gplus",
    help="Authorize against Google+ and query people, activities and profiles.",
    add_completion=False,
)

UserOption = Option(settings.DEFAULT_USER_KEY, "--user", "-u", help="Key the cached credential is stored under.")


def _announce_url(open_browser: bool) -> Callable[[str], None]:
    def _handler(url: str) -> None:
        typer.echo("-> Visit this URL to authorize gplus with your Google account:")
        typer.echo(url)
        if open_browser:
            webbrowser.open(url)

    return _handler


def _run(action: Callable[[], None]) -> None:
    """Execute ``action`` translating failures into a stage-specific message and exit code."""
    try:
        action()
    except ConfigurationError as exc:
        log_utils.log_message(f"Configuration error: {exc}", "ERROR")
        typer.echo(f"[FAIL] Configuration problem: {exc}")
        raise typer.Exit(code=1)
    except AuthorizationError as exc:
        log_utils.log_message(f"Authorization failed: {exc}", "ERROR")
        typer.echo(f"[FAIL] Authorization failed at stage '{exc.stage.value}': {exc}")
        raise typer.Exit(code=1)
    except PlusApiError as exc:
        log_utils.log_message(f"Google+ API error: {exc}", "ERROR")
        typer.echo(f"[FAIL] Google+ API call failed: {exc}")
        raise typer.Exit(code=1)
    except OSError as exc:
        log_utils.log_message(f"Credential store error: {exc}", "ERROR")
        typer.echo(f"[FAIL] Credential store error: {exc}")
        raise typer.Exit(code=1)


def _with_client(user: str, open_browser: bool, action: Callable[[PlusClient], None]) -> None:
    def _inner() -> None:
        with requests.Session() as session:
            client = services.connect(user, session, on_auth_url=_announce_url(open_browser))
            action(client)

    _run(_inner)


def _activity_text(activity: Dict[str, Any]) -> str:
    obj = activity.get("object") or {}
    return str(obj.get("content") or activity.get("title") or "").strip()


def _render_activities(activities: Iterable[Dict[str, Any]], title: str) -> None:
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Published")
    table.add_column("Content")
    for activity in activities:
        table.add_row(
            str(activity.get("id", "")),
            str(activity.get("published", "")),
            _activity_text(activity),
        )
    console.print(table)


def _render_person(person: Dict[str, Any]) -> None:
    typer.echo(f"Name: {person.get('displayName', '')}")
    typer.echo(f"URL:  {person.get('url', '')}")


@app.command()
def authorize(
    user: str = UserOption,
    browser: bool = Option(True, "--browser/--no-browser", help="Open the consent page automatically."),
) -> None:
    """
    Obtain (or refresh) a credential and store it in the credential cache.
    """

    def _inner() -> None:
        with requests.Session() as session:
            flow = services.build_authorization_flow(session, on_auth_url=_announce_url(browser))
            credential = flow.authorize(user)
        expiry = credential.expiry.isoformat() if credential.expiry else "unknown"
        typer.echo(f"[OK] Authorized '{user}'.")
        typer.echo(f"Access token:  {log_utils.mask_token(credential.access_token, 12)} (truncated)")
        typer.echo(f"Refresh token: {'present' if credential.can_refresh else 'none'}")
        typer.echo(f"Expires:       {expiry}")
        typer.echo(f"Scopes:        {' '.join(sorted(credential.scopes))}")

    _run(_inner)


@app.command("auth-status")
def auth_status(user: str = UserOption) -> None:
    """
    Report whether the cached credential is usable without touching the network.
    """

    def _inner() -> None:
        store = services.build_credential_store()
        status = determine_credential_status(store, user, settings.OAUTH_SCOPES)
        typer.echo(status.format_line())
        if status.state == "action_required":
            raise typer.Exit(code=1)

    _run(_inner)


@app.command()
def search(
    name: str = Argument(..., help="Name to search for."),
    max_results: int = Option(5, "--max-results", "-n", help="Maximum number of people to return."),
    activities: bool = Option(True, "--activities/--no-activities", help="Also show each person's latest activities."),
    user: str = UserOption,
    browser: bool = Option(True, "--browser/--no-browser"),
) -> None:
    """
    Show people with a given name and, optionally, their latest public activities.
    """

    def _action(client: PlusClient) -> None:
        people = client.search_people(name, max_results=max_results)
        if not people:
            typer.echo(f"No people found for '{name}'.")
            return
        for person in people:
            console.rule()
            _render_person(person)
            if activities and person.get("id"):
                _render_activities(
                    client.list_activities(person["id"], max_results=max_results),
                    title=f"Latest activities of {person.get('displayName', person['id'])}",
                )

    _with_client(user, browser, _action)


@app.command()
def profile(
    user_id: str = Option("me", "--user-id", help="Profile to fetch; defaults to the authorized user."),
    user: str = UserOption,
    browser: bool = Option(True, "--browser/--no-browser"),
) -> None:
    """
    Show a Google+ profile.
    """

    def _action(client: PlusClient) -> None:
        person = client.get_profile(user_id)
        _render_person(person)
        if person.get("aboutMe"):
            typer.echo(f"About: {person['aboutMe']}")

    _with_client(user, browser, _action)


@app.command(name="activities")
def list_activities(
    user_id: str = Argument(..., help="Google+ user id whose public activities to list."),
    max_results: int = Option(5, "--max-results", "-n"),
    user: str = UserOption,
    browser: bool = Option(True, "--browser/--no-browser"),
) -> None:
    """
    List a user's latest public activities.
    """

    def _action(client: PlusClient) -> None:
        items = client.list_activities(user_id, max_results=max_results)
        if not items:
            typer.echo(f"No public activities for {user_id}.")
            return
        for item in items:
            typer.echo(f"Activity: {_activity_text(item)}")

    _with_client(user, browser, _action)


@app.command()
def activity(
    activity_id: str = Argument(..., help="Activity id to fetch."),
    user: str = UserOption,
    browser: bool = Option(True, "--browser/--no-browser"),
) -> None:
    """
    Show a single activity.
    """

    def _action(client: PlusClient) -> None:
        item = client.get_activity(activity_id)
        actor = (item.get("actor") or {}).get("displayName", "")
        typer.echo(f"{item.get('title', '')} ({actor})")
        typer.echo(f"Activity: {_activity_text(item)}")

    _with_client(user, browser, _action)


@app.command(help="View the most recent lines from the gplus log.")
def logs(
    number: int = Argument(
        50,
        min=1,
        help="Number of log lines to show (default: 50)."
    )
) -> None:
    """
    Print the last N lines of the gplus log file.
    """
    log_file = settings.log_path
    if not log_file.exists():
        typer.echo(f"Log file not found: {log_file}")
        raise typer.Exit(code=1)

    with log_file.open("r", encoding="utf-8") as f:
        lines = f.readlines()
        for line in lines[-number:]:
            typer.echo(line.rstrip())


if __name__ == "__main__":  # pragma: no cover
    app()
