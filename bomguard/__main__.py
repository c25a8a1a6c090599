import typer
from dotenv import load_dotenv

from bomguard.commands import check_download
from bomguard.commands import delete_properties
from bomguard.commands import initialize
from bomguard.commands import inspect
from bomguard.commands import reinspect
from bomguard.commands import status
from bomguard.commands import storage_event
from bomguard.commands import update
from bomguard.core.logging import setup_logging

app = typer.Typer(
    help='BOMGuard: keep artifact repositories in sync with their bill of materials.',
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

app.add_typer(initialize.app, name='initialize')
app.add_typer(inspect.app, name='inspect')
app.add_typer(update.app, name='update')
app.command(name='storage-event')(storage_event.main)
app.command(name='check-download')(check_download.main)
app.add_typer(reinspect.app, name='reinspect')
app.add_typer(delete_properties.app, name='delete-properties')
app.add_typer(status.app, name='status')


@app.callback()
def main(
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging'),
    json_logs: bool | None = typer.Option(None, '--json/--no-json', help='Emit JSON log lines'),
):
    """
    BOMGuard CLI - inspect artifacts and reconcile BOM notifications.
    """
    load_dotenv()
    level = 'DEBUG' if debug else 'INFO'
    setup_logging(level=level, json_output=json_logs)


if __name__ == '__main__':
    app()
