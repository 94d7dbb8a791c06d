"""Post-response hooks, run detached from the request that triggered them."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from ..engine.node_executor import NodeExecutor
from ..engine.types import ExecutionContext, ToolResult, WorkflowNode

logger = logging.getLogger(__name__)

# Strong references to in-flight hook tasks; the event loop only keeps weak ones
_background_tasks: set[asyncio.Task] = set()

ContextFactory = Callable[[], Awaitable[ExecutionContext]]
ErrorSink = Callable[[str, Any, str, dict[str, Any]], Awaitable[None]]


class HookRunner:
    """
    Fans out post-response hook nodes as a fire-and-forget task.

    Hooks run in parallel. Each failure is logged and reported to the
    error sink on its own; none of them reaches the caller.
    """

    def __init__(self, executor: NodeExecutor, error_sink: ErrorSink | None = None) -> None:
        self._executor = executor
        self._error_sink = error_sink

    def schedule(
        self,
        flow_id: str,
        hooks: list[WorkflowNode],
        context_factory: ContextFactory,
    ) -> asyncio.Task | None:
        """Start running ``hooks`` in the background and return immediately."""
        if not hooks:
            return None

        logger.info("Executing %d post-response hooks", len(hooks))
        task = asyncio.create_task(self.run(flow_id, hooks, context_factory))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return task

    async def run(
        self,
        flow_id: str,
        hooks: list[WorkflowNode],
        context_factory: ContextFactory,
    ) -> list[ToolResult]:
        """Run every hook concurrently and collect their results."""
        return list(
            await asyncio.gather(
                *(self._run_one(flow_id, hook, context_factory) for hook in hooks)
            )
        )

    async def _run_one(
        self,
        flow_id: str,
        hook: WorkflowNode,
        context_factory: ContextFactory,
    ) -> ToolResult:
        try:
            context = await context_factory()
            result = await self._executor.execute(hook, context)
        except Exception as e:
            logger.exception("Hook %s failed", hook.display_name)
            if self._error_sink is not None:
                await self._error_sink(
                    flow_id,
                    hook.id,
                    f'Hook "{hook.display_name}" failed: {e}',
                    {"hookName": hook.label, "error": str(e)},
                )
            return ToolResult.fail(str(e))

        if result.success:
            logger.info("Hook %s completed", hook.display_name)
        else:
            logger.warning("Hook %s completed with error: %s", hook.display_name, result.error)
        return result


async def drain_background_tasks() -> None:
    """Wait for every in-flight hook task (shutdown and tests)."""
    while True:
        pending = [t for t in _background_tasks if not t.done()]
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)
