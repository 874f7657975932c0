from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .context import ExecutionContext
from .datasource import PromptData, ServiceClients, fetch_prompt_data
from .logging import StepTimers, get_logger, log_event
from .util.rich_progress import FetchProgress

LOG = get_logger(__name__)

DATA_OPEN = "<data>"
DATA_CLOSE = "</data>"

INSTRUCTION = (
    "You are an AWS diagnostic assistant.\n"
    "You will be given pieces of information surrounded by `<data></data>` tags\n"
    "Use this information to perform a diagnosis.\n"
    "Base your diagnosis from the provided information only.\n"
    "Use all of the information provided in your diagnosis.\n"
    "Structure your diagnosis per information, then provide a summary at the end\n"
    "Format your response using Markdown.\n"
    "Listed below are the information you will use:\n"
)


def render_block(prompt_data: PromptData) -> str:
    parts: List[str] = [f"{DATA_OPEN}\n", "\n".join(prompt_data.description), "\n"]
    if prompt_data.data is not None:
        parts.extend(["Data:\n", "```\n", prompt_data.data, "```\n"])
    parts.append(f"{DATA_CLOSE}\n\n")
    return "".join(parts)


def render_prompt(prompt_data: Iterable[PromptData]) -> str:
    return "".join(render_block(pd) for pd in prompt_data)


def build_prompt_data(
    ctx: ExecutionContext,
    clients: ServiceClients,
    *,
    progress: Optional[FetchProgress] = None,
) -> str:
    """
    Fetch every data source in order and concatenate the delimited blocks.

    Sources are visited strictly one after another in the context's sorted
    order. The first failing source aborts the whole aggregation.
    """
    bar = progress or FetchProgress(len(ctx.data_sources), enabled=False)
    timers = StepTimers()
    total = len(ctx.data_sources)
    gathered: List[PromptData] = []

    with bar:
        for index, source in enumerate(ctx.data_sources, start=1):
            bar.fetching(source.display_name)
            key = f"fetch-{index}"
            log_event(
                LOG,
                logging.DEBUG,
                f"Fetching {source.display_name}",
                step="fetch",
                phase="start",
                timers=timers,
                timer_key=key,
                source=source.display_name,
                order_no=source.order_no,
            )
            try:
                fetched = fetch_prompt_data(source, clients, ctx)
            except Exception as e:
                log_event(
                    LOG,
                    logging.ERROR,
                    f"Failed to fetch {source.display_name}",
                    step="fetch",
                    phase="error",
                    timers=timers,
                    timer_key=key,
                    source=source.display_name,
                    error=str(e),
                )
                raise
            gathered.extend(fetched)
            bar.advance()
            log_event(
                LOG,
                logging.INFO,
                f"Fetched {source.display_name} ({index}/{total})",
                step="fetch",
                phase="complete",
                timers=timers,
                timer_key=key,
                source=source.display_name,
                entries=len(fetched),
            )

    return render_prompt(gathered)
