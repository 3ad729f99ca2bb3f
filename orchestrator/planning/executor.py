"""
Wave scheduler for execution plans.

Every pass runs, in parallel, the pending steps whose dependencies have all
completed. Results are folded in before the next wave is computed.
"""
import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..context.cache import cache_tool_result, get_cached_result
from ..context.types import ConversationContext
from ..tool_executor import ToolExecutionResult
from .compiler import compile_plan_summary
from .types import ExecutionPlan, ExecutionStep, PlanExecutionResult, StepResult, StepResults


class ToolRunner(Protocol):
    async def execute_tool(self, tool_name: str, params: Dict[str, Any]) -> ToolExecutionResult: ...


StepStartHook = Callable[[ExecutionStep, Dict[str, Any]], None]
StepEndHook = Callable[[StepResult], None]


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


class PlanExecutor:
    def __init__(
        self,
        tools: ToolRunner,
        on_step_start: Optional[StepStartHook] = None,
        on_step_end: Optional[StepEndHook] = None,
    ) -> None:
        self.tools = tools
        self.on_step_start = on_step_start
        self.on_step_end = on_step_end

    async def _run_step(self, step: ExecutionStep, results: StepResults, context: ConversationContext) -> StepResult:
        if step.condition is not None and not step.condition(results):
            return StepResult(step_id=step.id, tool_name=step.tool_name, success=True, skipped=True)

        started = time.monotonic()
        params: Dict[str, Any] = {}
        try:
            params = step.resolve_params(results)
            if self.on_step_start:
                self.on_step_start(step, params)

            cached = get_cached_result(context, step.tool_name)
            # exact JSON equality, key order included
            if cached is not None and json.dumps(cached.params) == json.dumps(params):
                logging.info("Cache hit for %s in step %s", step.tool_name, step.id)
                result = ToolExecutionResult(success=True, tool_name=step.tool_name, params=params, data=cached.result)
            else:
                result = await self.tools.execute_tool(step.tool_name, params)
                if result.success:
                    cache_tool_result(context, step.tool_name, params, result.data)

            step_result = StepResult(
                step_id=step.id,
                tool_name=step.tool_name,
                success=result.success,
                data=result.data,
                error=result.error,
                duration=_elapsed_ms(started),
                params=params,
            )
        except Exception as e:
            logging.exception("Step %s failed", step.id)
            step_result = StepResult(
                step_id=step.id,
                tool_name=step.tool_name,
                success=False,
                error=str(e) or "Unknown error",
                duration=_elapsed_ms(started),
                params=params,
            )

        if self.on_step_end:
            self.on_step_end(step_result)
        return step_result

    async def execute_plan(self, plan: ExecutionPlan, context: ConversationContext) -> PlanExecutionResult:
        started = time.monotonic()
        results: StepResults = {}
        ordered: List[StepResult] = []
        pending = [step.id for step in plan.steps]
        completed = set()

        while pending:
            wave = [
                step for step in plan.steps
                if step.id in pending and all(dep in completed for dep in step.depends_on)
            ]
            if not wave:
                logging.warning("Plan %s stalled with pending steps %s", plan.id, pending)
                break

            wave_results = await asyncio.gather(*(self._run_step(step, results, context) for step in wave))
            for step_result in wave_results:
                results[step_result.step_id] = step_result
                ordered.append(step_result)
                pending.remove(step_result.step_id)
                completed.add(step_result.step_id)

        optional = {step.id for step in plan.steps if step.optional}
        return PlanExecutionResult(
            plan_id=plan.id,
            success=all(r.success or r.step_id in optional for r in ordered),
            results=ordered,
            summary=compile_plan_summary(plan, results),
            total_duration=_elapsed_ms(started),
        )
