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
        None, '--property', help='Property to delete (default: every blackduck. property)',
    ),
    repo: list[str] | None = typer.Option(None, '--repo', help='Repository key (default: all configured)'),
    yes: bool = typer.Option(False, '--yes', '-y', help='Do not ask for confirmation'),
):
    """
    Delete inspection properties so repositories are inspected from scratch.
    """
    properties = parse_properties(prop)
    if not yes:
        typer.confirm('Delete inspection properties from the configured repositories?', abort=True)
    paths = get_container().get_inspection_module().delete_inspection_properties(properties, repo or None)
    if paths is None:
        console.print('[yellow]Inspection module is disabled.[/yellow]')
        raise typer.Exit(0)
    console.print(f'Deleted inspection properties from [bold]{len(paths):,}[/bold] paths.')
