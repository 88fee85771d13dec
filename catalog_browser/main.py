"""Main entry point for the terminal catalog browser."""

import argparse
import asyncio
import logging
import sys

from .client import ProductApiClient
from .config import CatalogConfig
from .detail import ProductDetailLoader, ProductDetailState
from .models import Product
from .pagination import LoadPhase, PaginationEngine, PaginationState
from .repository import ProductRepository

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# =============================================================================
# Rendering
# =============================================================================

def display_price(price: str | None) -> str:
    """Price as shown to the user."""
    return price if price is not None else "N/A"


def format_product_cell(product: Product) -> str:
    """One grid cell."""
    return f"#{product.id} {product.name} ({product.brand}) {display_price(product.price)}"


def render_grid(products: tuple[Product, ...] | list[Product], columns: int = 3) -> list[str]:
    """Lay products out in rows of ``columns`` cells."""
    if not products:
        return []
    cells = [format_product_cell(p) for p in products]
    width = max(len(c) for c in cells)
    rows = []
    for start in range(0, len(cells), columns):
        row = cells[start:start + columns]
        rows.append(" | ".join(cell.ljust(width) for cell in row).rstrip())
    return rows


def render_detail(state: ProductDetailState) -> str:
    """Text for the detail view."""
    if state.is_loading:
        return "Loading product..."
    if state.error_message is not None:
        return f"Error: {state.error_message}\n[retry]"
    detail = state.product_detail
    if detail is None:
        return ""

    lines = [
        f"{detail.name} (#{detail.id})",
        f"Brand: {detail.brand}",
        f"Price: {display_price(detail.price)}",
    ]
    if detail.category:
        lines.append(f"Category: {detail.category}")
    if detail.description:
        lines.append(f"Description: {detail.description}")
    if detail.thumbnail:
        lines.append(f"Thumbnail: {detail.thumbnail}")
    for i, url in enumerate(detail.images, 1):
        lines.append(f"Image {i}: {url}")
    return "\n".join(lines)


class GridPrinter:
    """Prints the listing incrementally as pages arrive."""

    def __init__(self, columns: int = 3, out=None):
        self.columns = columns
        self.out = out or sys.stdout
        self._rendered = 0

    def __call__(self, state: PaginationState) -> None:
        if state.phase is LoadPhase.INITIAL_LOADING:
            self._rendered = 0
            print("Loading products...", file=self.out)
            return

        if self._rendered > len(state.items):
            self._rendered = 0
        for line in render_grid(state.items[self._rendered:], self.columns):
            print(line, file=self.out)
        self._rendered = len(state.items)

        if state.is_loading_more:
            print(f"Loading page {state.current_page + 1}...", file=self.out)
        elif state.phase is LoadPhase.INITIAL_ERROR and not state.items:
            # Nothing to show but the error
            print(f"Error: {state.error_message}\n[retry]", file=self.out)
        elif state.error_message is not None:
            print(f"Error: {state.error_message} [retry]", file=self.out)
        elif state.phase is LoadPhase.LOADED and not state.has_more_pages:
            print("End of catalog", file=self.out)


# =============================================================================
# Commands
# =============================================================================

async def drive_listing(engine: PaginationEngine, max_pages: int = 0, max_retries: int = 2) -> PaginationState:
    """Scroll the listing to the end, as a user reaching the sentinel would.

    Args:
        engine: Engine to drive
        max_pages: Stop once this many pages are loaded (0 = no limit)
        max_retries: Retries allowed after failed loads

    Returns:
        Final listing state
    """
    retries_left = max_retries
    engine.start()
    await engine.join()

    while True:
        state = engine.state

        if state.error_message is not None:
            if retries_left == 0:
                logger.error(f"Giving up after {max_retries} retries: {state.error_message}")
                break
            retries_left -= 1
            logger.info(f"Retrying ({max_retries - retries_left}/{max_retries})")
            engine.retry()
            await engine.join()
            continue

        if max_pages and state.current_page >= max_pages:
            logger.info(f"Reached page limit ({max_pages}), stopping")
            break
        if not state.should_load_more:
            break

        engine.load_more()
        await engine.join()

    return engine.state


async def run_browser(config: CatalogConfig) -> PaginationState:
    """Browse the catalog and print the grid as pages arrive."""
    async with ProductApiClient(config.base_url, timeout=config.timeout_seconds) as client:
        repository = ProductRepository(client, page_size=config.page_size)
        async with PaginationEngine(repository) as engine:
            unsubscribe = engine.observe().subscribe(GridPrinter(config.columns), replay=False)
            try:
                state = await drive_listing(engine, config.max_pages, config.max_retries)
            finally:
                unsubscribe()

    logger.info(f"Browse complete: {len(state.items)} products over {state.current_page} pages")
    return state


async def run_detail(config: CatalogConfig, product_id: int) -> ProductDetailState:
    """Load one product, retrying on failure."""
    async with ProductApiClient(config.base_url, timeout=config.timeout_seconds) as client:
        loader = ProductDetailLoader(ProductRepository(client, page_size=config.page_size), product_id)
        loader.load()
        await loader.join()

        for attempt in range(1, config.max_retries + 1):
            if loader.state.error_message is None:
                break
            logger.info(f"Retrying product {product_id} ({attempt}/{config.max_retries})")
            loader.retry()
            await loader.join()

        await loader.aclose()
        return loader.state


def build_config(args: argparse.Namespace) -> CatalogConfig:
    """Config file values overridden by command-line flags."""
    config = CatalogConfig.load(args.config)
    return config.with_overrides(
        base_url=getattr(args, "base_url", None),
        page_size=getattr(args, "page_size", None),
        max_pages=getattr(args, "pages", None),
        max_retries=getattr(args, "retries", None),
        columns=getattr(args, "columns", None),
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Product Catalog Browser - Page through a product REST API"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c", "--config",
        default="catalog_browser.yaml",
        help="Config file path (default: catalog_browser.yaml)"
    )
    common.add_argument("--base-url", help="Product API root URL")
    common.add_argument(
        "-r", "--retries",
        type=int,
        help="Automatic retries after a failed load"
    )
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    # Browse command (default)
    browse_parser = subparsers.add_parser("browse", parents=[common], help="Browse the catalog")
    browse_parser.add_argument("--page-size", type=int, help="Products per page")
    browse_parser.add_argument(
        "-p", "--pages",
        type=int,
        help="Stop after this many pages (0 = no limit)"
    )
    browse_parser.add_argument("--columns", type=int, help="Grid columns")

    # Detail command
    detail_parser = subparsers.add_parser("detail", parents=[common], help="Show one product")
    detail_parser.add_argument("product_id", type=int, help="Product identifier")

    # Init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a config file with defaults")
    init_parser.add_argument(
        "-c", "--config",
        default="catalog_browser.yaml",
        help="Config file path (default: catalog_browser.yaml)"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        # No subcommand: browse with defaults
        args = parser.parse_args(["browse"])

    if getattr(args, "verbose", False):
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "init-config":
        CatalogConfig().save(args.config)
        print(f"Config written: {args.config}")
        return 0

    try:
        config = build_config(args)

        if args.command == "detail":
            detail_state = asyncio.run(run_detail(config, args.product_id))
            print(render_detail(detail_state))
            return 1 if detail_state.error_message else 0

        state = asyncio.run(run_browser(config))

        print(f"\n{'='*50}")
        print("Browse Complete!")
        print(f"{'='*50}")
        print(f"Products:     {len(state.items)}")
        print(f"Pages:        {state.current_page}")
        print(f"More pages:   {'yes' if state.has_more_pages else 'no'}")
        if state.error_message:
            print(f"Last error:   {state.error_message}")
        print(f"{'='*50}")

        return 1 if state.error_message else 0

    except KeyboardInterrupt:
        logger.info("Browse interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Browse failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
