"""
This module renders a `ReportData` as a self-contained HTML document and
manages the run directories reports are saved to.

The narrative sections (summary, methodology, limitations) are treated as
Markdown; the charts, data table, extension cards, and sources are assembled
as HTML directly. The resulting page embeds its stylesheet, loads plotly.js
from the CDN, and carries print styles so the browser's "Save as PDF" gives a
clean document.
"""

import datetime
import html
import json
import logging
import os
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urlparse

import markdown
import yaml

from ... import constants
from ..models import ReportData, TableRow
from .charts import build_chart_figure, chart_to_html_div
from .localization import format_number, get_label, get_locale
from .table import SortState, discover_columns, sort_rows
from .theme import Theme

logger = logging.getLogger(__name__)

STYLE_SHEET_PATH = os.path.join(constants.ASSETS_DIR, "styles.css")
MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists", "nl2br"]
SAFE_URL_SCHEMES = ("http", "https")


# =============================================================================
# HTML FRAGMENTS
# =============================================================================
def _esc(value) -> str:
    return html.escape("" if value is None else str(value))


def _md(text: str) -> str:
    return markdown.markdown(text or "", extensions=MARKDOWN_EXTENSIONS)


def _href(url: Optional[str]) -> str:
    """Escapes a link target; anything but an http(s) URL becomes the placeholder."""
    if url and urlparse(url.strip()).scheme.lower() in SAFE_URL_SCHEMES:
        return _esc(url.strip())
    return constants.PLACEHOLDER_SOURCE_URL


def _format_cell(value, language: Optional[str]) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f'<td class="numeric">{format_number(value, language)}</td>'
    if isinstance(value, (dict, list)):
        return f"<td>{_esc(json.dumps(value, ensure_ascii=False))}</td>"
    return f"<td>{_esc(value)}</td>"


def _get_html_styles(report_width_px: int, stylesheet_path: str) -> str:
    """Loads the stylesheet and injects the report width as a CSS variable."""
    try:
        with open(stylesheet_path, "r", encoding="utf-8") as f:
            css_content = f.read()
    except FileNotFoundError:
        logger.error(f"CSS file not found at {stylesheet_path}. Using empty styles.")
        css_content = ""

    return f"""
        <style>
            :root {{
                --report-width: {report_width_px}px;
            }}
            {css_content}
        </style>
        """


def _render_table(
    rows: List[TableRow],
    sort_state: SortState,
    language: Optional[str],
    sortable_links: bool,
) -> str:
    columns = discover_columns(rows)
    if not columns:
        return ""

    header_cells = []
    for column in columns:
        label = _esc(column)
        marker = ""
        if sort_state.key == column:
            marker = " ▲" if sort_state.direction == "asc" else " ▼"
        if sortable_links:
            next_state = sort_state.toggle(column)
            query = urlencode({"sort": column, "direction": next_state.direction})
            label = f'<a href="?{_esc(query)}">{label}</a>'
        css_class = ' class="active"' if sort_state.key == column else ""
        header_cells.append(f"<th{css_class}>{label}{marker}</th>")

    body_rows = []
    for row in sort_rows(rows, sort_state):
        cells = "".join(_format_cell(row.get(column), language) for column in columns)
        body_rows.append(f"<tr>{cells}</tr>")

    return (
        f'<section class="data-table"><h2>{_esc(get_label(language, "table"))}</h2>'
        f"<table><thead><tr>{''.join(header_cells)}</tr></thead>"
        f"<tbody>{''.join(body_rows)}</tbody></table></section>"
    )


def _render_cards(report: ReportData, language: Optional[str]) -> str:
    """Store, listing, and keyword cards for the marketplace profiles."""
    parts = []
    if report.top_stores:
        cards = []
        for store in report.top_stores:
            name = _esc(store.name)
            if store.url:
                name = f'<a href="{_href(store.url)}" target="_blank" rel="noopener noreferrer">{name}</a>'
            rating = ""
            if store.rating is not None:
                rating = f'<p class="meta">{_esc(get_label(language, "rating"))}: {_esc(store.rating)}</p>'
            cards.append(
                f'<div class="card"><h3>{name}</h3><p>{_esc(store.specialization)}</p>{rating}</div>'
            )
        parts.append(
            f'<section class="cards"><h2>{_esc(get_label(language, "top_stores"))}</h2>'
            f'<div class="card-grid">{"".join(cards)}</div></section>'
        )

    if report.top_etsy_listings:
        cards = []
        for listing in report.top_etsy_listings:
            price = ""
            if listing.price is not None:
                price = f'<p class="meta">{_esc(get_label(language, "price"))}: {_esc(listing.price)}</p>'
            cards.append(
                f'<div class="card"><h3><a href="{_href(listing.url)}" target="_blank" '
                f'rel="noopener noreferrer">{_esc(listing.title)}</a></h3>'
                f'<p>{_esc(get_label(language, "shop"))}: <a href="{_href(listing.shop_url)}" '
                f'target="_blank" rel="noopener noreferrer">{_esc(listing.shop_name)}</a></p>'
                f"{price}</div>"
            )
        parts.append(
            f'<section class="cards"><h2>{_esc(get_label(language, "top_listings"))}</h2>'
            f'<div class="card-grid">{"".join(cards)}</div></section>'
        )

    if report.top_keywords:
        cards = []
        for keyword in report.top_keywords:
            category = ""
            if keyword.category:
                category = f'<p class="meta">{_esc(get_label(language, "category"))}: {_esc(keyword.category)}</p>'
            cards.append(
                f'<div class="card keyword"><h3>{_esc(keyword.keyword)}</h3>'
                f'<p>{_esc(get_label(language, "volume"))}: {_esc(keyword.volume)}</p>'
                f'<p>{_esc(get_label(language, "competition"))}: {_esc(keyword.competition)}</p>'
                f"{category}</div>"
            )
        parts.append(
            f'<section class="cards"><h2>{_esc(get_label(language, "top_keywords"))}</h2>'
            f'<div class="card-grid">{"".join(cards)}</div></section>'
        )
    return "".join(parts)


def _render_sources(report: ReportData, language: Optional[str]) -> str:
    items = []
    for source in report.sources:
        date = f' <span class="meta">{_esc(source.date)}</span>' if source.date else ""
        items.append(
            f'<li><a href="{_href(source.url)}" target="_blank" rel="noopener noreferrer">'
            f"{_esc(source.title)}</a>{date}</li>"
        )
    return (
        f'<section class="sources"><h2>{_esc(get_label(language, "sources"))}</h2>'
        f'<ol>{"".join(items)}</ol></section>'
    )


# =============================================================================
# PUBLIC API
# =============================================================================
def render_report_html(
    report: ReportData,
    theme: Theme = Theme.LIGHT,
    sort_state: Optional[SortState] = None,
    language: Optional[str] = None,
    report_width_px: int = 1100,
    sortable_links: bool = False,
    stylesheet_path: str = STYLE_SHEET_PATH,
) -> str:
    """
    Renders a report as a complete, self-contained HTML page.

    Args:
        report: The report to render.
        theme: Light or dark styling for the page and the charts.
        sort_state: The data table's sort column and direction.
        language: The report language; selects labels, digits, and direction.
        report_width_px: Maximum width of the report content.
        sortable_links: Make table headers links that toggle the sort (for the
            served page; the downloaded file is static).
        stylesheet_path: The CSS file embedded in the page.

    Returns:
        The HTML document as a string.
    """
    theme = Theme(theme)
    locale = get_locale(language)
    sort_state = sort_state or SortState()

    chart_divs = [
        chart_to_html_div(
            build_chart_figure(chart, theme, language), include_plotlyjs=(i == 0)
        )
        for i, chart in enumerate(report.charts)
    ]
    charts_html = ""
    if chart_divs:
        charts_html = (
            f'<section class="charts"><h2>{_esc(get_label(language, "charts"))}</h2>'
            + "".join(f'<div class="chart">{div}</div>' for div in chart_divs)
            + "</section>"
        )

    body = (
        f'<header class="report-header"><h1>{_esc(report.title)}</h1>'
        f'<button class="no-print" onclick="window.print()">{_esc(get_label(language, "print"))}</button>'
        f"</header>"
        f'<section class="summary"><h2>{_esc(get_label(language, "summary"))}</h2>{_md(report.summary)}</section>'
        f"{charts_html}"
        f"{_render_table(report.table_data, sort_state, language, sortable_links)}"
        f"{_render_cards(report, language)}"
        f'<section class="methodology"><h2>{_esc(get_label(language, "methodology"))}</h2>{_md(report.methodology)}</section>'
        f'<section class="limitations"><h2>{_esc(get_label(language, "limitations"))}</h2>{_md(report.limitations)}</section>'
        f"{_render_sources(report, language)}"
    )

    theme_class = "dark" if theme is Theme.DARK else "light"
    return f"""<!DOCTYPE html><html lang="{locale.code}" dir="{locale.direction}" class="{theme_class}"><head><meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1">
        <title>{_esc(report.title)}</title>{_get_html_styles(report_width_px, stylesheet_path)}</head>
        <body><div class="report-content-wrapper">{body}</div></body></html>
        """


def _slugify(text: str, max_length: int = 40) -> str:
    slug = re.sub(r"[^\w]+", "_", text.strip().lower(), flags=re.UNICODE).strip("_")
    return slug[:max_length] or "report"


def save_report(
    report: ReportData,
    report_html: str,
    base_output_dir: str,
    topic: str,
    language: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> str:
    """
    Saves the report payload and its HTML export in a new run directory.

    The directory is named `<YYYYMMDD_HHMMSS>_run_<topic-slug>` under
    `base_output_dir`, with both files in its `reports/` subdirectory. The
    request topic and language are recorded next to them so a served copy of
    the run keeps its labels and text direction.

    Returns:
        The path of the saved HTML file.
    """
    timestamp = (now or datetime.datetime.now()).strftime("%Y%m%d_%H%M%S")
    run_dir = os.path.join(base_output_dir, f"{timestamp}_run_{_slugify(topic)}")
    reports_dir = os.path.join(run_dir, constants.REPORTS_DIR_NAME)
    os.makedirs(reports_dir, exist_ok=True)

    json_path = os.path.join(reports_dir, constants.REPORT_JSON_FILENAME)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(report.to_payload(), f, ensure_ascii=False, indent=2)

    html_path = os.path.join(reports_dir, constants.REPORT_HTML_FILENAME)
    with open(html_path, "w", encoding="utf-8") as f:
        f.write(report_html)

    metadata_path = os.path.join(reports_dir, constants.RUN_METADATA_FILENAME)
    with open(metadata_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            {"topic": topic, "language": language}, f, allow_unicode=True
        )

    logger.info(f"Saved report to '{reports_dir}'.")
    return html_path


def find_latest_run_dir(base_output_dir: str) -> Optional[str]:
    """
    Finds the most recent run directory that holds a saved report.

    Returns:
        The path to the latest run directory, or None if none is found.
    """
    if not os.path.isdir(base_output_dir):
        logger.error(f"Output directory '{base_output_dir}' not found.")
        return None
    dir_pattern = re.compile(constants.RUN_DIR_REGEX)
    potential_dirs = [
        d
        for d in os.listdir(base_output_dir)
        if dir_pattern.match(d)
        and os.path.isfile(
            os.path.join(
                base_output_dir,
                d,
                constants.REPORTS_DIR_NAME,
                constants.REPORT_JSON_FILENAME,
            )
        )
    ]
    if not potential_dirs:
        logger.warning(f"No saved reports found in '{base_output_dir}'.")
        return None
    # YYYYMMDD_HHMMSS prefixes sort chronologically.
    return os.path.join(base_output_dir, sorted(potential_dirs, reverse=True)[0])


def load_saved_report(run_dir: str) -> ReportData:
    """Loads the report payload saved in a run directory."""
    json_path = os.path.join(
        run_dir, constants.REPORTS_DIR_NAME, constants.REPORT_JSON_FILENAME
    )
    with open(json_path, "r", encoding="utf-8") as f:
        return ReportData.model_validate(json.load(f))


def load_run_metadata(run_dir: str) -> Dict[str, Any]:
    """
    Loads the request details saved with a run.

    Returns:
        A dict with `topic` and `language` (either may be None). Runs saved
        without metadata give an empty dict.
    """
    metadata_path = os.path.join(
        run_dir, constants.REPORTS_DIR_NAME, constants.RUN_METADATA_FILENAME
    )
    if not os.path.isfile(metadata_path):
        logger.warning(f"No run metadata in '{run_dir}'; using the default language.")
        return {}
    with open(metadata_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}
