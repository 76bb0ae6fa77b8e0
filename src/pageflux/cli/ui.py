from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
import questionary

from pageflux.core.logging import get_logger
from pageflux.core.models import ContentItem
from pageflux.core.presentation import ContentItemViewModel, FeedViewModel, SectionViewModel

console = Console()
logger = get_logger(__name__)

LOAD_MORE = "Load more"
RETRY = "Retry"
REFRESH = "Refresh"
BACK = "Back"


def display_sections(sections: List[SectionViewModel], title: str) -> List[ContentItemViewModel]:
    """Renders every section as a table and returns the items in display order."""
    shown: List[ContentItemViewModel] = []
    for section in sections:
        table = Table(show_lines=False, expand=True)
        table.add_column("ID", style="cyan", justify="right", width=4)
        table.add_column("Title", style="magenta")
        table.add_column("Duration", style="green", justify="right")
        table.add_column("Score", justify="right")
        for item in section.items:
            shown.append(item)
            table.add_row(
                str(len(shown)),
                f"{item.icon} {item.title}",
                item.duration or "",
                item.formatted_score or "",
            )
        subtitle = f"{section.content_label} · {section.layout}"
        console.print(Panel(table, title=section.title or "Untitled", subtitle=subtitle, border_style="blue"))

    if not shown:
        console.print(f"[yellow]{title}: nothing to show.[/yellow]")
    return shown


def display_feed_status(feed: FeedViewModel) -> None:
    """Prints the error or empty state below (or instead of) the sections."""
    full_screen_error = feed.show_full_screen_error
    if full_screen_error is not None:
        console.print(Panel(full_screen_error.message, title=feed.error_title, border_style="red"))
        return
    load_more_error = feed.load_more_error
    if load_more_error is not None:
        console.print(f"[red]Could not load more: {load_more_error.message}[/red]")
    elif feed.is_empty:
        console.print(f"[yellow]{feed.empty_title}[/yellow]")


def prompt_feed_action(items: List[ContentItemViewModel], feed: FeedViewModel, allow_refresh: bool = True) -> Tuple[str, Optional[int]]:
    """
    Asks the user what to do next. Returns the chosen action and, for item
    selection, the index of the item.
    """
    choices = [f"{i}: {item.title}" for i, item in enumerate(items, 1)]
    if feed.can_load_more and feed.load_more_error is None:
        choices.append(LOAD_MORE)
    if feed.show_full_screen_error is not None or feed.load_more_error is not None:
        choices.append(RETRY)
    if allow_refresh:
        choices.append(REFRESH)
    choices.append(BACK)

    selected_choice = questionary.select(
        "Select an item or an action:", choices=choices,
        use_shortcuts=len(choices) <= 36
    ).ask()

    if not selected_choice or selected_choice == BACK:
        return BACK, None
    if selected_choice in (LOAD_MORE, RETRY, REFRESH):
        return selected_choice, None
    return "select", int(selected_choice.split(':')[0]) - 1


def display_item_details(item: ContentItem, cover: Optional[bytes] = None) -> None:
    """Shows everything known about one item in a focused layout."""
    view = ContentItemViewModel(item)
    table = Table.grid(padding=1)
    table.add_row(f"{view.icon} [bold]{view.title}[/bold]")
    if view.author_name:
        table.add_row(f"By: {view.author_name}")
    if view.duration:
        table.add_row(f"Duration: {view.duration}")
    if view.shows_release_date and view.formatted_release_date:
        table.add_row(f"Released: {view.formatted_release_date}")
    if view.formatted_score:
        table.add_row(f"Score: {view.formatted_score}")
    if view.subtitle:
        table.add_row(f"[dim]{view.subtitle}[/dim]")
    if item.audio_url:
        table.add_row(f"Audio: {item.audio_url}")
    if cover is not None:
        table.add_row(f"[dim]Cover art: {len(cover) / 1024:.1f} KB (cached)[/dim]")
    elif view.image_url:
        table.add_row(f"[dim]Cover art unavailable: {view.image_url}[/dim]")

    console.print(Panel(table, border_style="green"))
