"""NLPManager — free-form NLP task runner."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notewise.features.prompts import NLP_TASK_PROMPT

if TYPE_CHECKING:
    from notewise.providers._protocol import ModelProvider


class NLPManager:
    def __init__(self, provider: ModelProvider) -> None:
        self._provider = provider

    async def perform_task(self, task: str, text: str) -> str:
        """Run *task* (e.g. "summarize", "extract named entities") on *text*."""
        return await self._provider.complete(NLP_TASK_PROMPT.format(task=task, text=text))
