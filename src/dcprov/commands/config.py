import rich_click as click

from dcprov.runtime import pass_runtime
from dcprov.utils import normalize_url


@click.group(name="config", help="Manage the stored X-SDS-Service-Token for a DRACOON url")
@click.argument("url")
@click.pass_context
def config(ctx, url):
    ctx.meta["dcprov.config_url"] = normalize_url(url)


def _config_url():
    return click.get_current_context().meta["dcprov.config_url"]


@config.command(name="set", help="Store a X-SDS-Service-Token")
@click.argument("token")
@pass_runtime(require_keychain=True)
def config_set(runtime, token):
    url = _config_url()
    runtime.credentials.store(url, token)
    runtime.console.print(f"Stored credentials for {url}")


@config.command(name="get", help="Print the stored X-SDS-Service-Token")
@pass_runtime(require_keychain=True)
def config_get(runtime):
    url = _config_url()
    token = runtime.credentials.get(url)
    runtime.console.print(f"Stored token for {url} is {token}", markup=False)


@config.command(name="delete", help="Delete the stored X-SDS-Service-Token")
@pass_runtime(require_keychain=True)
def config_delete(runtime):
    url = _config_url()
    runtime.credentials.remove(url)
    runtime.console.print(f"Deleted credentials for {url}")
