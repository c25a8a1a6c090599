import typer

from bomguard.core.container import get_container
from bomguard.core.decorators import handle_errors
from bomguard.core.logging import console
from bomguard.models.properties import parse_properties

app = typer.Typer()


@app.callback(invoke_without_command=True)
@handle_errors
def main(
    prop: list[str] | None = typer.Option(
        None, '--property', help='Property to clear (default: all inspection properties)',
    ),
    repo: list[str] | None = typer.Option(None, '--repo', help='Repository key (default: all configured)'),
):
    """
    Clear failed artifacts and identify them again.
    """
    properties = parse_properties(prop)
    paths = get_container().get_inspection_module().reinspect_failures(properties, repo or None)
    if paths is None:
        console.print('[yellow]Inspection module is disabled.[/yellow]')
        raise typer.Exit(0)
    console.print(f'Reinspected [bold]{len(paths):,}[/bold] failed artifacts.')
