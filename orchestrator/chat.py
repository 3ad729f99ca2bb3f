"""
The three chat modes behind the HTTP API.

simple_chat lets the model call tools itself. orchestrated_chat runs the
intent -> plan -> synthesis pipeline and falls back to simple_chat.
stream_chat yields SSE frames for either path.
"""
import asyncio
import logging
from contextlib import aclosing, suppress
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from .context.cache import cache_tool_result
from .context.prompt_builder import build_contextual_prompt
from .context.sessions import SessionStore
from .context.types import ConversationContext
from .planning.types import ExecutionStep, StepResult
from .prompts import get_system_prompt_enhancement
from .services.context_preparation import ContextPreparationService
from .services.decision import OrchestrationDecisionService
from .services.plan_coordinator import PlanCoordinatorService
from .services.response_synthesis import ResponseSynthesisService, language_name
from .tool_executor import ToolExecutor

Frame = Dict[str, Any]

STATION_IDS = (
    "Zurich HB: 8503000, Bern: 8507000, Geneva: 8501008, Basel SBB: 8500010\n"
    "Lausanne: 8501120, Lucerne: 8505000, Thun: 8507100, Interlaken Ost: 8507492"
)

TOOL_GUIDANCE = """
ALWAYS use tools for real-time data. Never guess.

1. JOURNEY PLANNING: findTrips. "how do I get", "train from X to Y", "fastest route".
   Keep time expressions out of origin and destination; convert them to dateTime.
2. REAL-TIME BOARDS: findStopPlacesByName, then getPlaceEvents with the station id.
3. STATION SEARCH: findStopPlacesByName.
4. WEATHER: getWeather({locationName}). Returns current weather and a 7 day forecast.
5. SNOW CONDITIONS: getSnowConditions({locationName}) for ski resorts and mountains.
6. ECO COMPARISON: getEcoComparison({tripId}) with the id of a trip from findTrips.
7. TRAIN FORMATION: getTrainFormation({journeyId, stopPlaces}) with ids from earlier results.

If the user refers to "the first trip" or "service 2", recover the id from earlier results.
Never invent a journeyId.

COMMON STATION IDS:
""" + STATION_IDS


def next_saturday(now: datetime) -> datetime:
    weekday = now.weekday()  # Monday 0
    days = {5: 7, 6: 6}.get(weekday, 5 - weekday)
    return (now + timedelta(days=days)).replace(hour=8, minute=0, second=0, microsecond=0)


def build_system_prompt(
    language: str,
    context: Optional[ConversationContext] = None,
    with_tools: bool = True,
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now().astimezone()
    lang = language_name(language)
    sections = [
        "You are a helpful Swiss travel Companion.",
        "",
        "CONTEXT:",
        f"- User's language: {language}",
        f"- Current time: {now.isoformat()}",
        f'- Next Saturday ("this weekend"): {next_saturday(now).isoformat()}',
        "",
        "CAPABILITIES:",
        "- Public transport connections in Switzerland and to neighbouring countries",
        "- Station boards with live arrivals and departures",
        "- Weather for any location in Europe and snow conditions for ski resorts",
        "",
        "CRITICAL TOOL USAGE RULES:",
        TOOL_GUIDANCE if with_tools else "No tools available in this mode",
    ]
    if context is not None:
        contextual = build_contextual_prompt(context)
        if contextual:
            sections += ["", contextual]
        sections.append(get_system_prompt_enhancement(context))
    sections += [
        "",
        "RESPONSE GUIDELINES:",
        f"- You MUST respond in {lang}",
        "- Be concise and professional",
        "- When you call a tool, always use its results in the answer",
        "- Prioritize sustainable travel options",
    ]
    return "\n".join(sections)


def _tool_call_record(name: str, params: Dict[str, Any], data: Any) -> Dict[str, Any]:
    return {"toolName": name, "params": params, "result": data}


class ChatService:
    def __init__(
        self,
        llm: Any,
        tools: ToolExecutor,
        sessions: SessionStore,
        enable_orchestration: bool = True,
        confidence_threshold: float = 0.7,
        use_llm_intents: bool = False,
    ) -> None:
        self.llm = llm
        self.tools = tools
        self.sessions = sessions
        self.enable_orchestration = enable_orchestration
        self.confidence_threshold = confidence_threshold
        self.preparation = ContextPreparationService(sessions, llm, use_llm_intents)
        self.decision = OrchestrationDecisionService()
        self.coordinator = PlanCoordinatorService(tools)
        self.synthesis = ResponseSynthesisService(llm)

    def _remember(self, context: Optional[ConversationContext], name: str, params: Dict[str, Any], data: Any) -> None:
        if context is not None:
            cache_tool_result(context, name, params, data)

    async def simple_chat(
        self,
        message: str,
        history: Sequence[Dict[str, str]] = (),
        language: str = "en",
        session_id: Optional[str] = None,
        enable_function_calling: bool = True,
    ) -> Dict[str, Any]:
        context = self.sessions.get(session_id, language) if session_id else None
        chat = self.llm.start_chat(
            build_system_prompt(language, context, enable_function_calling), history, with_tools=enable_function_calling
        )
        turn = await chat.send(message)
        if not turn.function_calls:
            return {"response": turn.text}

        results = await self.tools.execute_tools((call.name, call.args) for call in turn.function_calls)
        tool_calls: List[Dict[str, Any]] = []
        responses = []
        for call, result in zip(turn.function_calls, results):
            tool_calls.append(_tool_call_record(call.name, call.args, result.data))
            if result.success:
                self._remember(context, call.name, result.params, result.data)
                responses.append((call.name, result.data))
            else:
                responses.append((call.name, {"error": result.error or "Tool execution failed", "success": False}))

        follow_up = await chat.send_function_responses(responses)
        return {"response": follow_up.text, "toolCalls": tool_calls}

    async def orchestrated_chat(
        self,
        message: str,
        session_id: str,
        history: Sequence[Dict[str, str]] = (),
        language: str = "en",
        voice_enabled: bool = False,
        parsed_intent: Optional[Dict[str, Any]] = None,
        nearest_station: Optional[str] = None,
    ) -> Dict[str, Any]:
        prepared = await self.preparation.prepare(message, session_id, language, parsed_intent, nearest_station)
        decision = self.decision.should_orchestrate(message, prepared.intents, self.confidence_threshold)
        logging.info("Orchestration decision: %s (%s)", decision.should_orchestrate, decision.reason)

        if decision.should_orchestrate:
            coordination = await self.coordinator.coordinate(prepared.intents, prepared.updated_context, language)
            if coordination is not None:
                response = await self.synthesis.synthesize(
                    message,
                    coordination.formatted_results,
                    coordination.plan_result.summary,
                    language,
                    voice_enabled,
                )
                result: Dict[str, Any] = {"response": response}
                if coordination.tool_calls:
                    result["toolCalls"] = coordination.tool_calls
                return result

        return await self.simple_chat(message, history, language, session_id)

    async def _orchestrated_frames(self, message: str, language: str, voice_enabled: bool, prepared: Any) -> AsyncIterator[Frame]:
        """Run the plans in the background and relay step events as they happen.

        Yields nothing when no plan had steps, so the caller can fall back.
        """
        queue: "asyncio.Queue[Optional[Frame]]" = asyncio.Queue()

        def step_started(step: ExecutionStep, params: Dict[str, Any]) -> None:
            queue.put_nowait({"type": "tool_call", "data": {"toolName": step.tool_name, "params": params}})

        def step_finished(result: StepResult) -> None:
            queue.put_nowait({
                "type": "tool_result",
                "data": {"toolName": result.tool_name, "result": result.data, "success": result.success},
            })

        async def run() -> Any:
            try:
                return await self.coordinator.coordinate(
                    prepared.intents, prepared.updated_context, language, step_started, step_finished
                )
            finally:
                queue.put_nowait(None)

        task = asyncio.create_task(run())
        try:
            while True:
                frame = await queue.get()
                if frame is None:
                    break
                yield frame
            coordination = await task
        finally:
            # the consumer went away before the plan finished
            if not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
        if coordination is None:
            return

        prompt = self.synthesis.build_prompt(
            message, coordination.formatted_results, coordination.plan_result.summary, language, voice_enabled
        )
        full_text = ""
        async for text in self.llm.stream_text(prompt):
            full_text += text
            yield {"type": "chunk", "data": {"text": text}}
        yield {"type": "complete", "data": {"fullText": full_text, "toolCalls": coordination.tool_calls or None}}

    async def _model_frames(
        self, message: str, history: Sequence[Dict[str, str]], language: str, context: ConversationContext
    ) -> AsyncIterator[Frame]:
        chat = self.llm.start_chat(build_system_prompt(language, context), history, with_tools=True)
        full_text = ""
        tool_calls: List[Dict[str, Any]] = []

        async for turn in chat.stream(message):
            if turn.text:
                full_text += turn.text
                yield {"type": "chunk", "data": {"text": turn.text}}
            for call in turn.function_calls:
                yield {"type": "tool_call", "data": {"toolName": call.name, "params": call.args}}
                result = await self.tools.execute_tool(call.name, call.args)
                if result.success:
                    self._remember(context, call.name, result.params, result.data)
                tool_calls.append(_tool_call_record(call.name, call.args, result.data))
                yield {
                    "type": "tool_result",
                    "data": {"toolName": call.name, "result": result.data, "success": result.success},
                }

        yield {"type": "complete", "data": {"fullText": full_text, "toolCalls": tool_calls or None}}

    async def stream_chat(
        self,
        message: str,
        session_id: str,
        history: Sequence[Dict[str, str]] = (),
        language: str = "en",
        voice_enabled: bool = False,
        parsed_intent: Optional[Dict[str, Any]] = None,
        nearest_station: Optional[str] = None,
    ) -> AsyncIterator[Frame]:
        try:
            if self.enable_orchestration:
                prepared = await self.preparation.prepare(message, session_id, language, parsed_intent, nearest_station)
                decision = self.decision.should_orchestrate(message, prepared.intents, self.confidence_threshold)
                logging.info("Orchestration decision: %s (%s)", decision.should_orchestrate, decision.reason)
                if decision.should_orchestrate:
                    completed = False
                    async with aclosing(self._orchestrated_frames(message, language, voice_enabled, prepared)) as frames:
                        async for frame in frames:
                            completed = completed or frame["type"] == "complete"
                            yield frame
                    if completed:
                        return
                context = prepared.updated_context
            else:
                context = self.sessions.get(session_id, language)

            async for frame in self._model_frames(message, history, language, context):
                yield frame
        except Exception as e:
            logging.exception("Streaming chat failed")
            yield {"type": "error", "data": {"error": str(e) or "Streaming failed"}}
