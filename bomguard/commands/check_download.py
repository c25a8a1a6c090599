import typer

from bomguard.core.container import get_container
from bomguard.core.decorators import handle_errors
from bomguard.core.logging import console


@handle_errors
def main(
    path: str = typer.Argument(..., help='Artifact path as repo-key/path/to/file'),
):
    """
    Check whether a download of an artifact would be allowed.

    Exits with status 3 when a module blocks the download.
    """
    container = get_container()
    container.get_inspection_module().handle_before_download(path)
    container.get_policy_module().handle_before_download(path)
    console.print(f'[green]Download of {path} is allowed.[/green]')
