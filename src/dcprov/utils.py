import csv
import io
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from rich import box
from rich.cells import cell_len
from rich.console import Console
from rich.table import Table
from rich.text import Text

from dcprov.exceptions import DcProvUsageError

CUSTOMER_COLUMNS = (
    "companyName",
    "customerContractType",
    "userUsed",
    "userMax",
    "quotaUsed",
    "quotaMax",
    "id",
    "createdAt",
)
USER_COLUMNS = ("id", "firstName", "lastName", "userName", "isLocked")
ATTRIBUTE_COLUMNS = ("key", "value")

ATTRIBUTE_PREFIX = "attribute:"
NO_RESULTS_MESSAGE = "No results."


class OutputFormat(str, Enum):
    pretty = "pretty"
    csv = "csv"


def normalize_url(url: str) -> str:
    """Reduce a DRACOON URL to ``https://host``, the key used for stored tokens."""
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    parts = urlsplit(url)
    if not parts.netloc:
        raise DcProvUsageError(f"Invalid DRACOON url: {url}")
    return f"https://{parts.netloc.lower()}"


def parse_key_val(raw: str) -> Tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise DcProvUsageError(f"Invalid attribute {raw!r}: expected KEY=VALUE")
    return key, value


def to_record(item: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten an API item into a mapping of scalars.

    Customer attributes (``{"items": [{"key": .., "value": ..}]}``) become
    ``attribute:<key>`` fields; any other nested value is dropped.
    """
    record = {}
    for key, value in item.items():
        if isinstance(value, dict) and isinstance(value.get("items"), list):
            for entry in value["items"]:
                if isinstance(entry, dict) and "key" in entry:
                    record[f"{ATTRIBUTE_PREFIX}{entry['key']}"] = entry.get("value")
        elif isinstance(value, (dict, list)):
            continue
        else:
            record[key] = value
    return record


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def collect_columns(records: Iterable[Dict[str, Any]]) -> List[str]:
    """Union of field names, in order of first appearance across records."""
    columns = {}
    for record in records:
        for key in record:
            columns.setdefault(key, None)
    return list(columns)


def records_to_table(records: Sequence[Dict[str, Any]], columns: Sequence[str]) -> Table:
    table = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False)
    for column in columns:
        table.add_column(Text(column), no_wrap=True, header_style="bold")
    for record in records:
        table.add_row(*[Text(format_value(record.get(column))) for column in columns])
    return table


def _render_pretty(records, columns) -> str:
    if not records:
        return f"{NO_RESULTS_MESSAGE}\n"
    table = records_to_table(records, columns)
    widths = [
        max([cell_len(column)] + [cell_len(format_value(r.get(column))) for r in records])
        for column in columns
    ]
    out = io.StringIO()
    console = Console(
        file=out,
        width=sum(widths) + 3 * len(widths) + 1,
        color_system=None,
        highlight=False,
        emoji=False,
        markup=False,
    )
    console.print(table)
    return "\n".join(line.rstrip() for line in out.getvalue().splitlines()) + "\n"


def _render_csv(records, columns) -> str:
    if not columns:
        return ""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(columns)
    for record in records:
        writer.writerow([format_value(record.get(column)) for column in columns])
    return out.getvalue()


def render_records(
    records: Sequence[Dict[str, Any]],
    fmt: OutputFormat = OutputFormat.pretty,
    columns: Optional[Sequence[str]] = None,
) -> str:
    """Render records as an aligned table or as CSV.

    Columns are computed from the records themselves. ``columns`` only
    applies when there are no records, so an empty CSV export still gets
    its header row.
    """
    records = list(records)
    computed = collect_columns(records) if records else list(columns or ())
    if OutputFormat(fmt) == OutputFormat.csv:
        return _render_csv(records, computed)
    return _render_pretty(records, computed)
