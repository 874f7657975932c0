from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Optional, Sequence, TextIO

from . import __version__
from .aws.clients import AwsClients
from .config import RunConfig, load_diagnostic_config, load_run_config
from .context import ExecutionContext, build_context
from .datasource import ServiceClients
from .llm import ChatInput, create_client, resolve_api_key, send_request
from .logging import LogConfig, StepTimers, get_logger, log_event, setup_logging
from .prompt import INSTRUCTION, build_prompt_data
from .util.errors import as_exit_code
from .util.rich_progress import FetchProgress

LOG = get_logger(__name__)

BANNER = """
███╗     █████╗               ██████╗     ███╗
██╔╝    ██╔══██╗              ██╔══██╗    ╚██║
██║     ███████║    █████╗    ██║  ██║     ██║
██║     ██╔══██║    ╚════╝    ██║  ██║     ██║
███╗    ██║  ██║              ██████╔╝    ███║
╚══╝    ╚═╝  ╚═╝              ╚═════╝     ╚══╝
- auto-diagnostic {version} -"""


def render_banner() -> str:
    return BANNER.format(version=__version__)


def run_diagnosis(
    ctx: ExecutionContext,
    prompt_data: str,
    *,
    client_factory: Callable[[str], Any] = create_client,
    out: Optional[TextIO] = None,
) -> str:
    timers = StepTimers()
    # Key is resolved before any client is built.
    api_key = resolve_api_key(ctx.open_ai_api_key)
    client = client_factory(api_key)
    log_event(
        LOG,
        logging.INFO,
        "Diagnosis started",
        step="diagnose",
        phase="start",
        timers=timers,
        model=ctx.open_ai_model,
    )
    text = send_request(
        client,
        ChatInput(
            model=ctx.open_ai_model,
            max_tokens=ctx.open_ai_max_token,
            system_prompt=INSTRUCTION,
            user_prompt=prompt_data,
        ),
        out=out,
    )
    log_event(
        LOG,
        logging.INFO,
        "Diagnosis complete",
        step="diagnose",
        phase="complete",
        timers=timers,
        chars=len(text),
    )
    return text


def cmd_run(
    run: RunConfig,
    *,
    clients: Optional[ServiceClients] = None,
    client_factory: Callable[[str], Any] = create_client,
    out: Optional[TextIO] = None,
    progress: Optional[FetchProgress] = None,
) -> int:
    sink = out or sys.stdout
    config = load_diagnostic_config(run)
    ctx = build_context(run, config)

    print(render_banner(), file=sink)

    service_clients: ServiceClients = clients if clients is not None else AwsClients(ctx.profile)
    bar = progress or FetchProgress(len(ctx.data_sources))
    prompt_data = build_prompt_data(ctx, service_clients, progress=bar)

    if ctx.print_prompt_data:
        print(f"\n{prompt_data}\n", file=sink)

    if ctx.dry_run:
        LOG.info("Dry run, skipping diagnosis", extra={"step": "diagnose", "phase": "skipped"})
        return 0

    run_diagnosis(ctx, prompt_data, client_factory=client_factory, out=sink)
    print(file=sink)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        run = load_run_config(argv=argv)
        setup_logging(LogConfig(level=run.log_level, json_logs=run.json_logs))
        sys.exit(cmd_run(run))
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except KeyboardInterrupt as e:
        sys.exit(as_exit_code(e))
    except Exception as e:
        # Map to consistent exit code and log
        setup_logging(LogConfig())
        LOG.error("Execution failed", extra={"error": str(e), "error_type": type(e).__name__})
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
