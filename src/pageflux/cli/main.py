import asyncio
import sys
import os
import argparse
import nest_asyncio
from rich.console import Console
from prompt_toolkit import PromptSession
from prompt_toolkit.buffer import Buffer
from rich.panel import Panel
from typing import Dict, Optional

from pageflux.core.config import DEFAULT_CONFIG_PATH, load_settings_from_yaml
from pageflux.core.images import ImageCache, ImageDownloader, ImageLoader
from pageflux.core.models import ContentItem
from pageflux.core.pagination import ItemSelectionSink, PaginationEngine
from pageflux.core.presentation import FeedViewModel
from pageflux.core.search import SearchCoordinator
from pageflux.core.sources import FeedSource, close_all_sources, get_all_sources
from . import ui
import questionary
from pageflux.core.logging import setup_logging, get_logger

# questionary runs its own prompt loop; let it nest inside ours
nest_asyncio.apply()

# Set up console and logging
console = Console()
setup_logging("--debug" in sys.argv or os.environ.get("PAGEFLUX_DEBUG", "false").lower() == "true")
logger = get_logger(__name__)

HOME = "Home feed"
SEARCH = "Search"
QUIT = "Quit"


class ConsoleSelectionSink(ItemSelectionSink):
    """Shows the picked item's details in place of navigating to a detail screen."""

    def __init__(self, image_loader: Optional[ImageLoader] = None):
        self.image_loader = image_loader

    def on_item_selected(self, item: ContentItem) -> None:
        cover = None
        if self.image_loader is not None and item.image_url:
            # nest_asyncio lets the download finish from inside the running loop
            cover = asyncio.get_event_loop().run_until_complete(self.image_loader.load(item.image_url))
        ui.display_item_details(item, cover)


class CLIApp:
    def __init__(self):
        self.sources: Dict[str, FeedSource] = {}
        self.is_running = True
        self.selection_sink = ConsoleSelectionSink()
        self.home: Optional[PaginationEngine] = None
        self.search: Optional[SearchCoordinator] = None
        self.image_downloader: Optional[ImageDownloader] = None

    def _load_sources(self, config_path: str):
        """Builds the sources and their engines from the settings file."""
        console.print("[cyan]Loading sources...[/cyan]")
        settings = load_settings_from_yaml(config_path)
        self.sources = get_all_sources(settings)

        cache = ImageCache(settings.image_count_limit, settings.image_total_cost_limit)
        self.image_downloader = ImageDownloader(timeout=settings.http_timeout)
        self.selection_sink.image_loader = ImageLoader(cache, self.image_downloader)

        if "home" in self.sources:
            self.home = PaginationEngine(self.sources["home"], self.selection_sink)
        if "search" in self.sources:
            search_engine = PaginationEngine(self.sources["search"], self.selection_sink)
            self.search = SearchCoordinator(search_engine, debounce_delay=settings.debounce_seconds)

        if not self.sources:
            console.print(f"[red]No sources configured. Set base URLs in '{config_path}' "
                          "or PAGEFLUX_HOME_BASE_URL / PAGEFLUX_SEARCH_BASE_URL.[/red]")

    # --- Home feed ---

    async def _browse_home(self):
        engine = self.home
        feed = FeedViewModel(engine)

        with console.status("[bold green]Loading home feed..."):
            await engine.load_first()

        while self.is_running:
            console.clear()
            items = ui.display_sections(feed.sections, "Home")
            ui.display_feed_status(feed)
            action, index = ui.prompt_feed_action(items, feed)

            if action == ui.BACK:
                break
            elif action == ui.LOAD_MORE:
                with console.status(f"[bold green]Loading page {engine.current_page + 1}..."):
                    await engine.load_next()
            elif action == ui.RETRY:
                with console.status("[bold green]Retrying..."):
                    await engine.retry()
            elif action == ui.REFRESH:
                with console.status("[bold green]Refreshing..."):
                    await engine.refresh()
            elif index is not None:
                engine.did_select_item(items[index].item)
                questionary.press_any_key_to_continue().ask()

        engine.cancel()

    # --- Search ---

    def _on_search_text_changed(self, buffer: Buffer):
        if buffer.text.strip():
            self.search.debounced_search(buffer.text)
        else:
            self.search.clear_search()

    def _search_toolbar(self) -> str:
        search = self.search
        if search.has_pending_debounce or search.is_searching:
            return "Searching..."
        if search.engine.last_error is not None:
            return f"Error: {search.engine.last_error.message}"
        if search.has_queried:
            count = sum(len(section.items) for section in search.sections)
            return f"{count} results for '{search.search_query}' - Enter to browse them"
        return "Type to search, Enter on an empty line lists everything, Ctrl-D goes back"

    async def _show_search_results(self):
        search = self.search
        feed = FeedViewModel(search.engine, empty_title="No Search Results")

        while self.is_running:
            console.clear()
            items = ui.display_sections(feed.sorted_sections, f"Results for '{search.search_query}'")
            ui.display_feed_status(feed)
            action, index = ui.prompt_feed_action(items, feed)

            if action == ui.BACK:
                break
            elif action == ui.LOAD_MORE:
                await search.load_next()
            elif action == ui.RETRY:
                with console.status("[bold green]Retrying..."):
                    await search.retry()
            elif action == ui.REFRESH:
                with console.status("[bold green]Refreshing..."):
                    await search.refresh()
            elif index is not None:
                search.did_select_item(items[index].item)
                questionary.press_any_key_to_continue().ask()

    async def _handle_search(self):
        session = PromptSession(multiline=False)
        session.default_buffer.on_text_changed += self._on_search_text_changed

        while self.is_running:
            try:
                query = await session.prompt_async(
                    "🔎 ", bottom_toolbar=self._search_toolbar, refresh_interval=0.3
                )
            except (KeyboardInterrupt, EOFError):
                break

            with console.status(f"[bold green]Searching for '{query.strip()}'..."):
                await self.search.immediate_search(query)
            await self._show_search_results()

        self.search.close()
        self.search.clear_search()

    # --- Main loop ---

    async def run(self):
        # Parse command-line arguments
        parser = argparse.ArgumentParser(description="pageflux: browse and search paged audio feeds.")
        parser.add_argument("--debug", action="store_true", help="Enable debug output.")
        parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to the settings file.")
        args = parser.parse_args()

        self._load_sources(args.config)
        console.print(Panel("Welcome to pageflux!\nBrowse the home feed or search for podcasts, episodes and audiobooks",
                            border_style="green"))

        choices = [c for c, available in ((HOME, self.home), (SEARCH, self.search)) if available]
        choices.append(QUIT)

        try:
            while self.is_running:
                try:
                    choice = questionary.select("Where to?", choices=choices).ask()
                except KeyboardInterrupt:
                    choice = QUIT

                if choice is None or choice == QUIT:
                    self.is_running = False
                elif choice == HOME:
                    await self._browse_home()
                elif choice == SEARCH:
                    await self._handle_search()
        finally:
            await close_all_sources(list(self.sources.values()))
            if self.image_downloader is not None:
                await self.image_downloader.close()

        console.print("\nGoodbye!")


def start():
    """Function to be called by the entry point."""
    app = CLIApp()
    asyncio.run(app.run())
