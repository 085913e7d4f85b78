import rich_click as click

from dcprov.api import USERS, customer_path
from dcprov.commands import list_records, query_options
from dcprov.runtime import pass_runtime
from dcprov.utils import USER_COLUMNS


@click.command(name="get-users", help="List the users of a customer")
@click.argument("url")
@click.argument("customer_id", type=int)
@query_options
@pass_runtime(require_keychain=True)
def get_users(runtime, url, customer_id, filters, sort, offset, limit, fetch_all, as_csv):
    list_records(
        runtime,
        url,
        customer_path(customer_id, USERS),
        USER_COLUMNS,
        "users",
        filters,
        sort,
        offset,
        limit,
        fetch_all,
        as_csv,
    )
