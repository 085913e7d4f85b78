import rich_click as click

from dcprov.api import ATTRIBUTES, attributes_from_pairs, customer_path
from dcprov.commands import list_records, query_options
from dcprov.runtime import pass_runtime
from dcprov.utils import ATTRIBUTE_COLUMNS, parse_key_val


@click.command(name="get-attributes", help="List the attributes of a customer")
@click.argument("url")
@click.argument("customer_id", type=int)
@query_options
@pass_runtime(require_keychain=True)
def get_attributes(runtime, url, customer_id, filters, sort, offset, limit, fetch_all, as_csv):
    list_records(
        runtime,
        url,
        customer_path(customer_id, ATTRIBUTES),
        ATTRIBUTE_COLUMNS,
        "attributes",
        filters,
        sort,
        offset,
        limit,
        fetch_all,
        as_csv,
    )


@click.command(name="set-attributes", help="Set attributes of a customer")
@click.argument("url")
@click.argument("customer_id", type=int)
@click.option(
    "-a",
    "--attribute",
    "attributes",
    multiple=True,
    required=True,
    help="Attribute as KEY=VALUE. Can be repeated.",
)
@pass_runtime(require_keychain=True)
def set_attributes(runtime, url, customer_id, attributes):
    pairs = [parse_key_val(raw) for raw in attributes]
    client = runtime.get_api_client(url)
    client.update_customer_attributes(customer_id, attributes_from_pairs(pairs))
    runtime.console.print(
        f"[green]Success[/green] Updated attributes of customer with id {customer_id}"
    )
