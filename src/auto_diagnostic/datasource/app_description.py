from __future__ import annotations

from .base import PromptData
from .model import AppDescription


def fetch_data(config: AppDescription) -> PromptData:
    return PromptData(
        description=[
            "Information: [App Description]",
            config.description,
        ],
        data=None,
    )
