"""
Builds and runs one plan per intent, in priority order, and merges the
outcomes into a single result for synthesis.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..context.types import ConversationContext, Intent
from ..planning.executor import PlanExecutor, StepEndHook, StepStartHook, ToolRunner
from ..planning.factory import create_execution_plan
from ..planning.formatter import format_plan_results
from ..planning.types import ExecutionPlan, PlanExecutionResult


@dataclass
class CoordinationResult:
    plans: List[ExecutionPlan]
    plan_result: PlanExecutionResult
    formatted_results: str
    tool_calls: List[Dict[str, Any]] = field(default_factory=list)


def combine_results(results: List[PlanExecutionResult]) -> PlanExecutionResult:
    if len(results) == 1:
        return results[0]

    summary: Dict[str, Any] = {}
    for result in results:
        for key, value in result.summary.items():
            if value is not None and key not in summary:
                summary[key] = value
    summary["plans"] = [result.summary for result in results]

    return PlanExecutionResult(
        plan_id=f"multi-{int(time.time() * 1000)}",
        success=all(result.success for result in results),
        results=[step for result in results for step in result.results],
        summary=summary,
        total_duration=sum(result.total_duration for result in results),
    )


class PlanCoordinatorService:
    def __init__(self, tools: ToolRunner) -> None:
        self.tools = tools

    async def coordinate(
        self,
        intents: List[Intent],
        context: ConversationContext,
        language: str,
        on_step_start: Optional[StepStartHook] = None,
        on_step_end: Optional[StepEndHook] = None,
    ) -> Optional[CoordinationResult]:
        executor = PlanExecutor(self.tools, on_step_start=on_step_start, on_step_end=on_step_end)
        plans: List[ExecutionPlan] = []
        results: List[PlanExecutionResult] = []

        for intent in sorted(intents, key=lambda i: i.priority or 0):
            plan = create_execution_plan(intent, context)
            if plan is None or not plan.steps:
                logging.info("No execution plan for intent %s", intent.type)
                continue
            plans.append(plan)
            result = await executor.execute_plan(plan, context)
            logging.info("Plan %s finished: success=%s, %d step(s)", plan.name, result.success, len(result.results))
            results.append(result)

        if not results:
            return None

        combined = combine_results(results)
        return CoordinationResult(
            plans=plans,
            plan_result=combined,
            formatted_results="\n\n".join(format_plan_results(result, language) for result in results),
            tool_calls=combined.tool_calls(),
        )
