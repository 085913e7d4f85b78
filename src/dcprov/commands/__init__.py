import rich_click as click

from dcprov.paginator import run, run_best_effort
from dcprov.query import build_query
from dcprov.utils import OutputFormat, render_records, to_record


def query_options(func):
    """Filter, sort and paging options shared by every list-style command."""
    options = [
        click.option(
            "-f",
            "--filter",
            "filters",
            multiple=True,
            help="Filter as field:operator:value (e.g. companyName:cn:ACME). Repeat or join with | to combine.",
        ),
        click.option("-s", "--sort", help="Sort as field:asc or field:desc."),
        click.option("-o", "--offset", help="Start at this offset."),
        click.option("-l", "--limit", help="Items per request; the server may cap it."),
        click.option("--all", "fetch_all", is_flag=True, help="Fetch all pages."),
        click.option("--csv", "as_csv", is_flag=True, help="Output comma-separated values."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def echo_records(records, as_csv, columns=None, label="items", summary=None):
    fmt = OutputFormat.csv if as_csv else OutputFormat.pretty
    click.echo(render_records(records, fmt, columns=columns), nl=False)
    if as_csv:
        return
    if summary:
        click.echo(summary, err=True)
    elif records:
        click.echo(f"{len(records)} {label}", err=True)


def range_summary(label, page, query, page_size):
    """Server range of the first page as ``total <label>: N | offset: N | limit: N``."""
    offset = page.offset if page.offset is not None else query.offset or 0
    limit = page.limit if page.limit is not None else query.limit or page_size
    return f"total {label}: {page.total} | offset: {offset} | limit: {limit}"


def list_records(
    runtime,
    url,
    path,
    columns,
    label,
    filters,
    sort,
    offset,
    limit,
    fetch_all,
    as_csv,
    extra_params=None,
):
    """Query ``path`` on ``url`` and print the records.

    The query is validated before a token is resolved or any request is
    sent. CSV output is written even when a later page fails, followed by
    the error; pretty output needs the whole result and is not printed on
    failure.
    """
    query = build_query(offset=offset, limit=limit, filters=filters, sort=sort, all=fetch_all)
    client = runtime.get_api_client(url)
    fetch_page = client.page_fetcher(path, query, extra_params=extra_params)

    if as_csv:
        result = run_best_effort(query, fetch_page, page_size=runtime.page_size)
        if result.records or result.error is None:
            echo_records([to_record(item) for item in result.records], True, columns, label)
        if result.error is not None:
            raise result.error
        return

    pages = []

    def fetch_and_keep(offset, limit):
        page = fetch_page(offset, limit)
        pages.append(page)
        return page

    items = run(query, fetch_and_keep, page_size=runtime.page_size)
    summary = range_summary(label, pages[0], query, runtime.page_size) if pages else None
    echo_records([to_record(item) for item in items], False, columns, label, summary)
