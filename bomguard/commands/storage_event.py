import typer

from bomguard.core.container import get_container
from bomguard.core.decorators import handle_errors
from bomguard.core.logging import console


@handle_errors
def main(
    path: str = typer.Argument(..., help='Artifact path as repo-key/path/to/file'),
):
    """
    Handle an artifact created, copied or moved into a repository.
    """
    coordinate = get_container().get_inspection_module().handle_artifact_created_or_moved(path)
    if coordinate is None:
        console.print(f'[yellow]{path} was not identified.[/yellow]')
        raise typer.Exit(0)
    console.print(f'[green]{path}[/green] identified as [bold]{coordinate}[/bold]')
