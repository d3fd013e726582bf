from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.analysis import ListingMetrics, PriceAnalysis
from ..models.analytics import AnalyticsSummary
from ..models.cache import CacheStats, SavedQuery

_RECOMMENDATION_COLORS = {
    "competitive": "green",
    "premium": "magenta",
    "budget": "yellow",
}


class TerminalOutput:
    """Rich terminal output for price analyses and cache/analytics reports."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def display_analysis(self, analysis: PriceAnalysis, cache_hit: bool = False):
        source = "[dim](cached)[/dim]" if cache_hit else "[dim](live)[/dim]"
        self.console.print()
        self.console.print(
            Panel(
                f"[bold white]Price Check: {analysis.query}[/bold white] {source}\n"
                f"[dim]Analyzed {analysis.timestamp:%Y-%m-%d %H:%M} UTC[/dim]",
                border_style="green",
            )
        )

        metrics = Table(title="Listing Metrics", padding=(0, 2))
        metrics.add_column("", style="bold cyan")
        metrics.add_column("Active", justify="right")
        metrics.add_column("Sold", justify="right")
        for label, getter in (
            ("Count", lambda m: str(m.count)),
            ("Average", lambda m: f"${m.average_price:,.2f}"),
            ("Median", lambda m: f"${m.median_price:,.2f}"),
            ("Min", lambda m: f"${m.min_price:,.2f}"),
            ("Max", lambda m: f"${m.max_price:,.2f}"),
            ("Std Dev", lambda m: f"${m.standard_deviation:,.2f}"),
            ("Typical Range", _typical_range),
        ):
            metrics.add_row(
                label, getter(analysis.active_listings), getter(analysis.sold_listings)
            )
        self.console.print(metrics)

        if analysis.recommendations:
            recs = Table(title="Recommended Prices", padding=(0, 2))
            recs.add_column("Strategy", style="bold")
            recs.add_column("Price", justify="right")
            recs.add_column("Confidence", justify="right")
            recs.add_column("Why")
            for rec in analysis.recommendations:
                color = _RECOMMENDATION_COLORS.get(rec.type, "white")
                recs.add_row(
                    f"[{color}]{rec.type.title()}[/{color}]",
                    f"[bold]${rec.price:,.2f}[/bold]",
                    f"{rec.confidence:.0%}",
                    f"[dim]{rec.reasoning}[/dim]",
                )
            self.console.print(recs)
        else:
            self.console.print(
                "[yellow]Not enough active and sold listings for a recommendation.[/yellow]"
            )

        if analysis.price_distribution:
            self._display_histogram(analysis)

        if analysis.price_trends:
            trends = Table(title="Sold Price Trend", padding=(0, 2))
            trends.add_column("Date")
            trends.add_column("Average", justify="right")
            trends.add_column("Median", justify="right")
            trends.add_column("Sold", justify="right")
            for point in analysis.price_trends:
                trends.add_row(
                    point.date,
                    f"${point.average_price:,.2f}",
                    f"${point.median_price:,.2f}",
                    str(point.count),
                )
            self.console.print(trends)

        if analysis.outliers:
            outliers = Table(title="Outliers", padding=(0, 2))
            outliers.add_column("Item")
            outliers.add_column("Price", justify="right")
            outliers.add_column("Deviation", justify="right")
            for outlier in analysis.outliers:
                color = "red" if outlier.reason == "high" else "blue"
                outliers.add_row(
                    outlier.title[:60],
                    f"[{color}]${outlier.price:,.2f}[/{color}]",
                    f"{outlier.deviation:.2f}σ {outlier.reason}",
                )
            self.console.print(outliers)
        self.console.print()

    def _display_histogram(self, analysis: PriceAnalysis):
        table = Table(title="Price Distribution", show_header=False, box=None, padding=(0, 1))
        table.add_column("Range", style="cyan")
        table.add_column("Bar")
        table.add_column("Count", justify="right")
        for bucket in analysis.price_distribution:
            bar = "█" * max(0, bucket.percentage // 2)
            table.add_row(bucket.label, f"[green]{bar}[/green]", f"{bucket.count} ({bucket.percentage}%)")
        self.console.print(table)

    def display_history(self, history: list[str]):
        if not history:
            self.console.print("[dim]No searches yet.[/dim]")
            return
        for i, query in enumerate(history, 1):
            self.console.print(f"[dim]{i:>2}.[/dim] {query}")

    def display_saved_queries(self, queries: list[SavedQuery]):
        if not queries:
            self.console.print("[dim]No saved queries.[/dim]")
            return
        table = Table(title="Saved Queries", padding=(0, 2))
        table.add_column("ID", style="dim")
        table.add_column("Name", style="bold")
        table.add_column("Query")
        table.add_column("Uses", justify="right")
        table.add_column("Last Used")
        for q in queries:
            table.add_row(q.id, q.name, q.query, str(q.use_count), f"{q.last_used:%Y-%m-%d %H:%M}")
        self.console.print(table)

    def display_cache_stats(self, stats: CacheStats):
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Metric", style="bold")
        table.add_column("Value", style="bold green")
        table.add_row("Cached queries", str(stats.total_entries))
        table.add_row("Hits per entry", f"{stats.hit_rate:.2f}")
        table.add_row("Oldest entry", _fmt_time(stats.oldest_entry))
        table.add_row("Newest entry", _fmt_time(stats.newest_entry))
        self.console.print(Panel(table, title="[bold]Cache[/bold]"))

    def display_analytics(self, summary: AnalyticsSummary):
        """Display a summary of recorded price checks."""
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Metric", style="bold")
        table.add_column("Value", style="bold green")
        table.add_row("Price checks", str(summary.total_queries))
        table.add_row("Avg processing time", f"{summary.average_processing_time:.2f} ms")
        table.add_row("Cache hit rate", f"{summary.cache_hit_rate:.0%}")
        table.add_row("Click-throughs per check", f"{summary.click_through_rate:.2f}")
        table.add_row(
            "Period",
            f"{_fmt_time(summary.time_range_start)} - {_fmt_time(summary.time_range_end)}",
        )
        self.console.print(Panel(table, title="[bold]Analytics Summary[/bold]"))

        if summary.most_searched_items:
            top = Table(title="Most Searched", padding=(0, 2))
            top.add_column("Query")
            top.add_column("Searches", justify="right")
            for item in summary.most_searched_items:
                top.add_row(item.query, str(item.count))
            self.console.print(top)


def _typical_range(metrics: ListingMetrics) -> str:
    return f"${metrics.price_range.low:,.2f} - ${metrics.price_range.high:,.2f}"


def _fmt_time(value) -> str:
    return f"{value:%Y-%m-%d %H:%M}" if value else "-"
