import argparse
import asyncio
import logging
import os
import sys

# Force UTF-8 output on Windows so Rich bars render correctly
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8")
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding="utf-8")

from rich.console import Console

from .config import load_settings
from .output.html_report import generate_html_report
from .output.terminal import TerminalOutput
from .service import PriceCheckError, PriceCheckService

logger = logging.getLogger(__name__)


async def run(args) -> int:
    console = Console()
    settings = load_settings(args.settings)
    output = TerminalOutput(console)

    async with PriceCheckService.from_settings(settings) as service:
        if args.command == "check":
            if not settings.ebay_app_id:
                console.print(
                    "[red]No eBay application id configured.[/red] "
                    "[dim]Set EBAY_APP_ID or ebay_app_id in the settings file.[/dim]"
                )
                return 1

            try:
                with console.status(f"Checking prices for '{args.query}'..."):
                    outcome = await service.check(
                        args.query,
                        condition=args.condition,
                        category_id=args.category,
                        max_results=args.max_results,
                        force_refresh=args.no_cache,
                    )
            except PriceCheckError as e:
                console.print(f"[red]Price check failed:[/red] {e}")
                return 1

            output.display_analysis(outcome.analysis, cache_hit=outcome.cache_hit)
            if args.report:
                path = generate_html_report(outcome.analysis, output_dir=args.report_dir)
                console.print(f"[bold]HTML report:[/bold] {path}")

        elif args.command == "history":
            if args.clear:
                await service.clear_search_history()
                console.print("[green]Search history cleared.[/green]")
            else:
                output.display_history(await service.get_search_history())

        elif args.command == "saved":
            output.display_saved_queries(await service.get_saved_queries())

        elif args.command == "save":
            saved = await service.save_query(args.query, args.name)
            console.print(f"Saved [bold]{saved.name}[/bold] [dim](id {saved.id})[/dim]")

        elif args.command == "use":
            await service.update_query_usage(args.id)
            output.display_saved_queries(await service.get_saved_queries())

        elif args.command == "stats":
            output.display_cache_stats(await service.get_cache_stats())

        elif args.command == "clear-cache":
            await service.clear_all_cache()
            console.print("[green]Price cache cleared.[/green]")

        elif args.command == "analytics":
            if args.export:
                console.print_json(await service.export_analytics())
            else:
                output.display_analytics(await service.get_analytics_summary())
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Price Check - market price analysis from active and sold eBay listings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            '  price-check check "vintage camera"\n'
            '  price-check check 885909950805 --condition Used --report\n'
            '  price-check save "vintage camera" "Cam Search"\n'
        ),
    )
    parser.add_argument(
        "--settings",
        default="config/settings.json",
        help="Path to settings config file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Analyze prices for a query, item id or UPC")
    check.add_argument("query")
    check.add_argument(
        "--condition",
        choices=["New", "Used", "Refurbished", "ForPartsOrNotWorking"],
        help="Only include listings in this condition",
    )
    check.add_argument("--category", help="eBay category id to search in")
    check.add_argument("--max-results", type=int, help="Listings per search (default: 50)")
    check.add_argument("--no-cache", action="store_true", help="Ignore cached analyses")
    check.add_argument("--report", action="store_true", help="Write an HTML report")
    check.add_argument("--report-dir", default="public", help="Directory for HTML reports")

    history = sub.add_parser("history", help="Show recent searches")
    history.add_argument("--clear", action="store_true", help="Clear search history")

    sub.add_parser("saved", help="List saved queries")

    save = sub.add_parser("save", help="Save a query under a name")
    save.add_argument("query")
    save.add_argument("name")

    use = sub.add_parser("use", help="Record a use of a saved query")
    use.add_argument("id")

    sub.add_parser("stats", help="Show price cache statistics")
    sub.add_parser("clear-cache", help="Delete every cached analysis")

    analytics = sub.add_parser("analytics", help="Summarize recorded price checks")
    analytics.add_argument("--export", action="store_true", help="Print raw records as JSON")

    args = parser.parse_args()

    # Set up logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Suppress noisy loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        Console().print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
