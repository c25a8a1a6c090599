import typer
from rich.table import Table

from bomguard.core.container import get_container
from bomguard.core.decorators import handle_errors
from bomguard.core.logging import console

app = typer.Typer()


@app.callback(invoke_without_command=True)
@handle_errors
def main(
    repo: list[str] | None = typer.Option(None, '--repo', help='Repository key (default: all configured)'),
):
    """
    Register repositories with their BOM project version.
    """
    module = get_container().get_inspection_module()
    results = module.initialize_repositories(repo or None)
    if results is None:
        console.print('[yellow]Inspection module is disabled.[/yellow]')
        raise typer.Exit(0)

    table = Table(title='Repository Initialization')
    table.add_column('Repository', style='cyan')
    table.add_column('Initialized', justify='center')
    for repo_key, ok in sorted(results.items()):
        table.add_row(repo_key, '[green]yes[/green]' if ok else '[red]no[/red]')
    console.print(table)

    if not all(results.values()):
        raise typer.Exit(1)
