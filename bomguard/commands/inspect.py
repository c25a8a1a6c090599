import structlog
import typer
from rich.table import Table

from bomguard.core.container import get_container
from bomguard.core.decorators import handle_errors
from bomguard.core.logging import console

logger = structlog.get_logger('inspect_command')
app = typer.Typer()


@app.callback(invoke_without_command=True)
@handle_errors
def main(
    repo: list[str] | None = typer.Option(None, '--repo', help='Repository key (default: all configured)'),
):
    """
    Inspect artifacts that are pending or due for a retry.
    """
    module = get_container().get_inspection_module()
    stats = module.inspect_all_deltas(repo or None)
    if stats is None:
        console.print('[yellow]Inspection module is disabled.[/yellow]')
        raise typer.Exit(0)

    table = Table(title='Delta Inspection')
    table.add_column('Metric', style='cyan')
    table.add_column('Count', style='magenta', justify='right')
    for label, value in (
        ('Candidates', stats.total),
        ('Identified', stats.identified),
        ('Inspected', stats.inspected),
        ('Unresolved', stats.unresolved),
        ('Failed', stats.failed),
        ('Skipped repositories', stats.skipped),
    ):
        table.add_row(label, f'{value:,}')
    console.print(table)
    logger.info('Delta inspection finished', elapsed=f'{stats.elapsed_time:.2f}s')
