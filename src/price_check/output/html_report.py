import html
import logging
import re
from datetime import datetime
from pathlib import Path

from ..models.analysis import ListingMetrics, PriceAnalysis

logger = logging.getLogger(__name__)

_REC_COLORS = {
    "competitive": "#22c55e",
    "premium": "#d946ef",
    "budget": "#f59e0b",
}


def generate_html_report(analysis: PriceAnalysis, output_dir: str = "public") -> str:
    """Generate a self-contained HTML report for one price analysis."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    slug = re.sub(r"[^a-z0-9]+", "-", analysis.query.lower()).strip("-") or "query"
    path = out / f"price-check-{slug}.html"

    now = datetime.now().strftime("%B %d, %Y at %I:%M %p")
    content = _TEMPLATE.replace("{{QUERY}}", _esc(analysis.query))
    content = content.replace("{{GENERATED}}", now)
    content = content.replace("{{ACTIVE_COUNT}}", str(analysis.active_listings.count))
    content = content.replace("{{SOLD_COUNT}}", str(analysis.sold_listings.count))
    content = content.replace("{{SOLD_MEDIAN}}", _money(analysis.sold_listings.median_price))
    content = content.replace("{{OUTLIER_COUNT}}", str(len(analysis.outliers)))
    content = content.replace("{{METRIC_ROWS}}", _metric_rows(analysis))
    content = content.replace("{{RECOMMENDATIONS}}", _recommendations(analysis))
    content = content.replace("{{HISTOGRAM}}", _histogram(analysis))
    content = content.replace("{{TREND_ROWS}}", _trend_rows(analysis))
    content = content.replace("{{OUTLIER_ROWS}}", _outlier_rows(analysis))

    path.write_text(content, encoding="utf-8")
    logger.info(f"HTML report written to {path}")
    return str(path)


def _esc(text: str) -> str:
    return html.escape(str(text)) if text else ""


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _metric_rows(analysis: PriceAnalysis) -> str:
    active = analysis.active_listings
    sold = analysis.sold_listings

    def row(label: str, fmt) -> str:
        return f"<tr><td>{label}</td><td>{fmt(active)}</td><td>{fmt(sold)}</td></tr>"

    def typical(m: ListingMetrics) -> str:
        return f"{_money(m.price_range.low)} - {_money(m.price_range.high)}"

    return "\n".join([
        row("Listings", lambda m: str(m.count)),
        row("Average", lambda m: _money(m.average_price)),
        row("Median", lambda m: _money(m.median_price)),
        row("Min", lambda m: _money(m.min_price)),
        row("Max", lambda m: _money(m.max_price)),
        row("Std Dev", lambda m: _money(m.standard_deviation)),
        row("Typical Range", typical),
    ])


def _recommendations(analysis: PriceAnalysis) -> str:
    if not analysis.recommendations:
        return '<p class="empty">Not enough active and sold listings for a recommendation.</p>'
    parts = []
    for rec in analysis.recommendations:
        color = _REC_COLORS.get(rec.type, "#94a3b8")
        parts.append(f"""
  <div class="rec" style="border-color:{color}">
    <div class="rec-type" style="color:{color}">{_esc(rec.type.title())}</div>
    <div class="rec-price">{_money(rec.price)}</div>
    <div class="rec-why">{_esc(rec.reasoning)}</div>
    <div class="rec-conf">Confidence {rec.confidence:.0%}</div>
  </div>""")
    return "".join(parts)


def _histogram(analysis: PriceAnalysis) -> str:
    if not analysis.price_distribution:
        return '<p class="empty">No listings found.</p>'
    parts = []
    for bucket in analysis.price_distribution:
        parts.append(
            f'<div class="bar-row"><span class="bar-label">{_esc(bucket.label)}</span>'
            f'<span class="bar" style="width:{bucket.percentage}%"></span>'
            f'<span class="bar-count">{bucket.count} ({bucket.percentage}%)</span></div>'
        )
    return "\n".join(parts)


def _trend_rows(analysis: PriceAnalysis) -> str:
    if not analysis.price_trends:
        return '<tr><td colspan="4" class="empty">No sold listings.</td></tr>'
    return "\n".join(
        f"<tr><td>{point.date}</td><td>{_money(point.average_price)}</td>"
        f"<td>{_money(point.median_price)}</td><td>{point.count}</td></tr>"
        for point in analysis.price_trends
    )


def _outlier_rows(analysis: PriceAnalysis) -> str:
    if not analysis.outliers:
        return '<tr><td colspan="3" class="empty">No outliers.</td></tr>'
    return "\n".join(
        f'<tr><td>{_esc(o.title)}</td><td class="{o.reason}">{_money(o.price)}</td>'
        f"<td>{o.deviation:.2f}&sigma; {o.reason}</td></tr>"
        for o in analysis.outliers
    )


_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>Price Check: {{QUERY}}</title>
<style>
*{box-sizing:border-box;margin:0;padding:0}
body{font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background:#0f172a;color:#e2e8f0;padding:16px;max-width:1000px;margin:0 auto}
h1{font-size:1.5rem;color:#f8fafc;margin-bottom:4px}
h2{font-size:1rem;color:#f8fafc;margin:24px 0 10px}
.subtitle{color:#94a3b8;font-size:.85rem;margin-bottom:20px}
.stats{display:grid;grid-template-columns:repeat(auto-fit,minmax(140px,1fr));gap:12px;margin-bottom:20px}
.stat{background:#1e293b;border-radius:10px;padding:16px;text-align:center}
.stat-value{font-size:1.8rem;font-weight:700;color:#22c55e}
.stat-label{font-size:.75rem;color:#94a3b8;text-transform:uppercase;letter-spacing:.05em;margin-top:4px}
table{width:100%;border-collapse:collapse;background:#1e293b;border-radius:10px;overflow:hidden}
thead{background:#334155}
th{padding:10px 14px;text-align:left;font-size:.75rem;text-transform:uppercase;letter-spacing:.05em;color:#94a3b8;font-weight:600}
td{padding:10px 14px;border-top:1px solid #334155;font-size:.9rem}
.recs{display:grid;grid-template-columns:repeat(auto-fit,minmax(200px,1fr));gap:12px}
.rec{background:#1e293b;border-left:4px solid;border-radius:10px;padding:14px}
.rec-type{font-weight:700;font-size:.8rem;text-transform:uppercase;letter-spacing:.05em}
.rec-price{font-size:1.6rem;font-weight:700;color:#f8fafc;margin:4px 0}
.rec-why{color:#cbd5e1;font-size:.85rem}
.rec-conf{color:#64748b;font-size:.75rem;margin-top:6px}
.bar-row{display:flex;align-items:center;gap:10px;margin:4px 0;font-size:.8rem}
.bar-label{width:170px;color:#94a3b8;white-space:nowrap}
.bar{display:inline-block;height:14px;background:#22c55e;border-radius:3px;min-width:2px}
.bar-count{color:#cbd5e1}
.high{color:#f87171;font-weight:600}
.low{color:#38bdf8;font-weight:600}
.empty{text-align:center;padding:20px;color:#64748b;font-size:.9rem}
.footer{text-align:center;color:#475569;font-size:.75rem;margin-top:20px;padding:10px}
@media(max-width:640px){
  .stats{grid-template-columns:repeat(2,1fr)}
  td{padding:8px;font-size:.82rem}
  .bar-label{width:120px}
}
</style>
</head>
<body>
<h1>Price Check: {{QUERY}}</h1>
<p class="subtitle">Report generated {{GENERATED}}</p>

<div class="stats">
  <div class="stat"><div class="stat-value">{{ACTIVE_COUNT}}</div><div class="stat-label">Active Listings</div></div>
  <div class="stat"><div class="stat-value">{{SOLD_COUNT}}</div><div class="stat-label">Sold Listings</div></div>
  <div class="stat"><div class="stat-value">{{SOLD_MEDIAN}}</div><div class="stat-label">Sold Median</div></div>
  <div class="stat"><div class="stat-value" style="color:#f87171">{{OUTLIER_COUNT}}</div><div class="stat-label">Outliers</div></div>
</div>

<h2>Recommended Prices</h2>
<div class="recs">{{RECOMMENDATIONS}}</div>

<h2>Listing Metrics</h2>
<table>
<thead><tr><th></th><th>Active</th><th>Sold</th></tr></thead>
<tbody>
{{METRIC_ROWS}}
</tbody>
</table>

<h2>Price Distribution</h2>
{{HISTOGRAM}}

<h2>Sold Price Trend</h2>
<table>
<thead><tr><th>Date</th><th>Average</th><th>Median</th><th>Sold</th></tr></thead>
<tbody>
{{TREND_ROWS}}
</tbody>
</table>

<h2>Outliers</h2>
<table>
<thead><tr><th>Item</th><th>Price</th><th>Deviation</th></tr></thead>
<tbody>
{{OUTLIER_ROWS}}
</tbody>
</table>

<div class="footer">
  Price Check &mdash; active and sold marketplace listings analysis
</div>
</body>
</html>"""
