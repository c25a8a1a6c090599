import structlog
import typer
from rich.table import Table

from bomguard.core.container import get_container
from bomguard.core.decorators import handle_errors
from bomguard.core.logging import console

logger = structlog.get_logger('update_command')
app = typer.Typer()


@app.callback(invoke_without_command=True)
@handle_errors
def main(
    repo: list[str] | None = typer.Option(None, '--repo', help='Repository key (default: all configured)'),
):
    """
    Apply BOM notifications received since each repository's last update.
    """
    module = get_container().get_inspection_module()
    stats = module.update_all_metadata(repo or None)
    if stats is None:
        console.print('[yellow]Inspection module is disabled.[/yellow]')
        raise typer.Exit(0)

    table = Table(title='Notification Update')
    table.add_column('Metric', style='cyan')
    table.add_column('Count', style='magenta', justify='right')
    table.add_row('Notifications', f'{stats.notifications:,}')
    table.add_row('Ignored notifications', f'{stats.ignored_notifications:,}')
    table.add_row('Artifacts updated', f'{stats.artifacts_updated:,}')
    table.add_row('Failed repositories', f'{stats.failed:,}')
    console.print(table)
    logger.info('Update finished', elapsed=f'{stats.elapsed_time:.2f}s')

    if stats.failed:
        raise typer.Exit(1)
