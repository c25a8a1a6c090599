import logging
import os
import sys
from typing import Any

import structlog
from rich.console import Console

# Central console for rich output
console = Console()

# Event keys whose values must never reach a log sink.
SECRET_KEYS = frozenset({'api_token', 'api_key', 'token', 'authorization', 'password'})


class RichConsoleRenderer:
    """
    A structlog renderer printing events through rich.Console.

    Events render as `timestamp logger LEVEL event key=value ...`. Repository
    and artifact paths are highlighted so a sweep over many repositories stays
    readable. An optional '_style' key overrides the line style.
    """

    _level_styles = {
        'debug': 'dim',
        'info': 'green',
        'warning': 'yellow',
        'error': 'bold red',
        'critical': 'bold magenta',
    }
    _highlight_keys = ('repo', 'path')

    def __init__(self, console: Console | None = None):
        self._console = console or Console()

    def __call__(self, logger, name, event_dict):
        custom_style = event_dict.pop('_style', None)

        event = event_dict.pop('event', '')
        log_level = event_dict.pop('level', 'info')
        logger_name = event_dict.pop('logger', None)
        timestamp = event_dict.pop('timestamp', '')
        exception = event_dict.pop('exception', None) or event_dict.pop('exc_info', None)
        stack_info = event_dict.pop('stack_info', None)

        parts = []
        if timestamp:
            parts.append(f"[dim]{timestamp}[/dim]")
        if logger_name:
            parts.append(f"[bold]{logger_name}[/bold]")

        level_style = self._level_styles.get(log_level, 'white')
        parts.append(f"[{level_style}]{log_level:<8}[/{level_style}]")
        parts.append(event)

        for key in self._highlight_keys:
            if key in event_dict:
                parts.append(f"[bold cyan]{key}[/bold cyan]=[bold]{event_dict.pop(key)}[/bold]")
        for key, value in event_dict.items():
            parts.append(f"[cyan]{key}[/cyan]=[green]{value!r}[/green]")

        final_msg = ' '.join(parts)
        if exception:
            final_msg += f"\n[red]{exception}[/red]"
        if stack_info:
            final_msg += f"\n[dim]{stack_info}[/dim]"

        self._console.print(final_msg, style=custom_style)

        # The stdlib logger would otherwise print an empty line
        raise structlog.DropEvent


def mask_secrets_processor(logger, method_name, event_dict):
    """Replace values of credential-like keys with a fixed mask."""
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = '*****'
    return event_dict


def drop_style_processor(logger, method_name, event_dict):
    """Remove the console-only '_style' hint from JSON output."""
    event_dict.pop('_style', None)
    return event_dict


def setup_logging(level: str = 'INFO', json_output: bool | None = None) -> None:
    """
    Configure structured logging for the application.

    JSON lines are emitted when `json_output` is true or, if it is None,
    when ENV=production. Otherwise events go to the rich console.
    """
    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level)
    # urllib3 retry chatter duplicates the HTTP hook in bomguard.core.client
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        mask_secrets_processor,
    ]

    if json_output is None:
        json_output = os.getenv('ENV') == 'production'

    if json_output:
        processors = shared_processors + [
            drop_style_processor,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            RichConsoleRenderer(console),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
