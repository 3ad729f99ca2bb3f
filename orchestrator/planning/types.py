from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

ToolParams = Dict[str, Any]
StepResults = Dict[str, "StepResult"]
ParamsFn = Callable[[StepResults], ToolParams]


@dataclass
class ExecutionStep:
    id: str
    tool_name: str
    # static params, or a function of the results gathered so far
    params: Union[ToolParams, ParamsFn] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)
    optional: bool = False
    condition: Optional[Callable[[StepResults], bool]] = None

    def resolve_params(self, results: StepResults) -> ToolParams:
        if callable(self.params):
            return self.params(results)
        return dict(self.params)


@dataclass
class ExecutionPlan:
    id: str
    name: str
    description: str
    steps: List[ExecutionStep] = field(default_factory=list)


@dataclass
class StepResult:
    step_id: str
    tool_name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    duration: float = 0.0
    skipped: bool = False
    params: ToolParams = field(default_factory=dict)


@dataclass
class PlanExecutionResult:
    plan_id: str
    success: bool
    results: List[StepResult] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    total_duration: float = 0.0

    def tool_calls(self) -> List[Dict[str, Any]]:
        """Successful steps with data, in the wire shape the UI renders as cards."""
        return [
            {"toolName": r.tool_name, "params": r.params, "result": r.data}
            for r in self.results
            if r.success and r.data
        ]
