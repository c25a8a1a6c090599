import functools
from collections.abc import Callable
from typing import Any

import structlog
import typer

from bomguard.core.exceptions import BomGuardError
from bomguard.core.exceptions import ConfigurationError
from bomguard.core.exceptions import DownloadBlockedError
from bomguard.core.logging import console

logger = structlog.get_logger('decorators')


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to handle exceptions in CLI commands nicely."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except DownloadBlockedError as e:
            console.print(f"[bold red]Blocked ({e.status_code}):[/] {e.reason}")
            raise typer.Exit(3)
        except (ConfigurationError, ValueError) as e:
            console.print(f"[bold red]Configuration Error:[/] {e}")
            logger.debug('Configuration error', exc_info=True)
            raise typer.Exit(2)
        except BomGuardError as e:
            console.print(f"[bold red]Error:[/] {e}")
            logger.debug('Operation failed', exc_info=True)
            raise typer.Exit(1)
        except KeyboardInterrupt:
            console.print('\n[yellow]Operation cancelled by user.[/]')
            raise typer.Exit(130)
        except Exception as e:
            console.print(f"[bold red]Unexpected Error:[/] {e}")
            logger.exception('Unexpected error')
            raise typer.Exit(1)
    return wrapper


def module_operation(func: Callable[..., Any]) -> Callable[..., Any]:
    """Run a module method only while the module is enabled; otherwise log and return None."""
    @functools.wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any) -> Any:
        if not self.enabled:
            logger.info('Module disabled, skipping', module=self.name, operation=func.__name__)
            return None
        return func(self, *args, **kwargs)
    return wrapper
