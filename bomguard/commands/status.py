import typer
from rich.panel import Panel
from rich.table import Table

from bomguard.core.container import get_container
from bomguard.core.decorators import handle_errors
from bomguard.core.logging import console

app = typer.Typer()


@app.callback(invoke_without_command=True)
@handle_errors
def main(
    json_output: bool = typer.Option(False, '--json', help='Print the report as JSON'),
):
    """
    Show module configuration and repository status.
    """
    report = get_container().create_status_service().build_report()
    if json_output:
        console.print_json(report.model_dump_json())
        return

    modules = Table(title='Modules')
    modules.add_column('Module', style='cyan')
    modules.add_column('Enabled', justify='center')
    modules.add_column('Validation')
    for module in report.modules:
        modules.add_row(
            module.name,
            '[green]yes[/green]' if module.enabled else '[dim]no[/dim]',
            '[green]ok[/green]' if module.valid else '[red]' + '\n'.join(module.errors) + '[/red]',
        )
    console.print(modules)

    repos = Table(title='Repositories')
    repos.add_column('Repository', style='cyan')
    repos.add_column('Package Type')
    repos.add_column('Inspection')
    repos.add_column('Update')
    repos.add_column('Last Update')
    for repo in report.repositories:
        if not repo.exists:
            repos.add_row(repo.repo_key, '[red]missing[/red]', '', '', '')
            continue
        repos.add_row(
            repo.repo_key,
            repo.package_type or '-',
            str(repo.inspection_status) + (f' ({repo.message})' if repo.message else ''),
            str(repo.update_status) if repo.update_status else '-',
            repo.last_update.isoformat() if repo.last_update else '-',
        )
    console.print(repos)

    artifacts = f'{report.artifact_count:,}' if report.artifact_count is not None else 'unknown'
    console.print(
        Panel.fit(
            f'Configured repositories: [bold green]{len(report.repositories)}[/bold green]\n'
            f'Artifacts: [bold green]{artifacts}[/bold green]\n'
            f"Package types: [bold green]{', '.join(report.package_types) or '-'}[/bold green]",
            title='BOMGuard Status',
        ),
    )
