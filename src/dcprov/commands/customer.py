import json

import rich_click as click
from pydantic import ValidationError
from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from dcprov.api import CUSTOMERS
from dcprov.commands import echo_records, list_records, query_options
from dcprov.exceptions import DcProvUsageError
from dcprov.models import (
    FirstAdminUser,
    NewCustomerRequest,
    UpdateCustomerRequest,
    UserAuthData,
)
from dcprov.runtime import pass_runtime
from dcprov.utils import CUSTOMER_COLUMNS, to_record

DEFAULT_CONTRACT_TYPE = "pay"


@click.command(name="list", help="List all customers for a DRACOON url")
@click.argument("url")
@query_options
@click.option(
    "--include-attributes",
    is_flag=True,
    help="Include customer attributes as attribute:<key> columns.",
)
@pass_runtime(require_keychain=True)
def list_customers(runtime, url, filters, sort, offset, limit, fetch_all, as_csv, include_attributes):
    list_records(
        runtime,
        url,
        CUSTOMERS,
        CUSTOMER_COLUMNS,
        "customers",
        filters,
        sort,
        offset,
        limit,
        fetch_all,
        as_csv,
        extra_params={"include_attributes": "true"} if include_attributes else None,
    )


@click.command(name="get", help="Get a customer by id")
@click.argument("url")
@click.argument("customer_id", type=int)
@click.option("--csv", "as_csv", is_flag=True, help="Output comma-separated values.")
@click.option("--include-attributes", is_flag=True, help="Include customer attributes.")
@pass_runtime(require_keychain=True)
def get_customer(runtime, url, customer_id, as_csv, include_attributes):
    client = runtime.get_api_client(url)
    customer = client.get_customer(customer_id, include_attributes=include_attributes)
    echo_records([to_record(customer)], as_csv, CUSTOMER_COLUMNS, "customer")


@click.command(name="delete", help="Delete a customer by id")
@click.argument("url")
@click.argument("customer_id", type=int)
@pass_runtime(require_keychain=True)
def delete_customer(runtime, url, customer_id):
    client = runtime.get_api_client(url)
    client.delete_customer(customer_id)
    runtime.console.print(f"[green]Success[/green] Deleted customer with id {customer_id}")


@click.group(name="update", help="Update a customer by id")
@click.argument("url")
@click.argument("customer_id", type=int)
@click.pass_context
def update(ctx, url, customer_id):
    ctx.meta["dcprov.update"] = (url, customer_id)


def _update_customer(runtime, update_request):
    url, customer_id = click.get_current_context().meta["dcprov.update"]
    client = runtime.get_api_client(url)
    customer = client.update_customer(customer_id, update_request)
    runtime.console.print(f"[green]Success[/green] Updated customer with id {customer_id}")
    echo_records([to_record(customer)], False, CUSTOMER_COLUMNS, "customer")


@update.command(name="company-name", help="Update the company name")
@click.argument("company_name")
@pass_runtime(require_keychain=True)
def update_company_name(runtime, company_name):
    _update_customer(runtime, UpdateCustomerRequest(company_name=company_name))


@update.command(name="quota-max", help="Update the maximum quota (in bytes)")
@click.argument("quota_max", type=click.IntRange(min=1))
@pass_runtime(require_keychain=True)
def update_quota_max(runtime, quota_max):
    _update_customer(runtime, UpdateCustomerRequest(quota_max=quota_max))


@update.command(name="user-max", help="Update the maximum number of users")
@click.argument("user_max", type=click.IntRange(min=1))
@pass_runtime(require_keychain=True)
def update_user_max(runtime, user_max):
    _update_customer(runtime, UpdateCustomerRequest(user_max=user_max))


@click.group(name="create", help="Create a new customer")
@click.argument("url")
@click.pass_context
def create(ctx, url):
    ctx.meta["dcprov.create"] = url


def _create_customer(runtime, new_customer: NewCustomerRequest):
    url = click.get_current_context().meta["dcprov.create"]
    client = runtime.get_api_client(url)
    customer = client.create_customer(new_customer)
    runtime.console.print("[green]Success[/green] Customer created.")
    echo_records([to_record(customer)], False, label="customer")


def parse_customer_file(path: str) -> NewCustomerRequest:
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except OSError as e:
        raise DcProvUsageError(f"Could not open file {path}: {e}") from e
    except ValueError as e:
        raise DcProvUsageError(f"Could not parse customer from file {path}: {e}") from e
    try:
        return NewCustomerRequest.model_validate(data)
    except ValidationError as e:
        raise DcProvUsageError(f"Invalid customer in file {path}:\n{e}") from e


def _ask_positive(prompt: str, console: Console) -> int:
    while True:
        value = IntPrompt.ask(prompt, console=console)
        if value > 0:
            return value
        console.print("[red]Please enter a valid positive number.")


def prompt_new_customer(console: Console) -> NewCustomerRequest:
    console.print("[bold white on blue]Step 1: Enter first admin user")
    first_name = Prompt.ask("First name", console=console)
    last_name = Prompt.ask("Last name", console=console)
    email = Prompt.ask("Email address", console=console)
    user_name = None
    if Confirm.ask("Provide username?", default=False, console=console):
        user_name = Prompt.ask("Username", console=console)

    console.print("[bold white on blue]Step 2: Configure customer")
    company_name = Prompt.ask("Company name", console=console)
    quota_max = _ask_positive("Maximum quota (in bytes)", console)
    user_max = _ask_positive("Maximum users", console)

    first_admin_user = FirstAdminUser(
        first_name=first_name,
        last_name=last_name,
        user_name=user_name or email,
        email=email,
        auth_data=UserAuthData(method="basic", must_change_password=True),
        notify_user=True,
    )
    return NewCustomerRequest(
        customer_contract_type=DEFAULT_CONTRACT_TYPE,
        quota_max=quota_max,
        user_max=user_max,
        first_admin_user=first_admin_user,
        company_name=company_name,
    )


@create.command(name="from-file", help="Create a new customer from a JSON file")
@click.argument("path", type=click.Path(dir_okay=False))
@pass_runtime(require_keychain=True)
def create_from_file(runtime, path):
    _create_customer(runtime, parse_customer_file(path))


@create.command(name="prompt", help="Create a new customer via interactive prompt")
@pass_runtime(require_keychain=True)
def create_prompt(runtime):
    try:
        new_customer = prompt_new_customer(runtime.console)
    except EOFError:
        raise click.Abort()
    _create_customer(runtime, new_customer)
