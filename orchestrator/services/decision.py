import logging
from dataclasses import dataclass
from typing import List, Optional

from ..context.types import Intent
from ..planning.detection import requires_orchestration


@dataclass
class OrchestrationDecision:
    should_orchestrate: bool
    reason: str
    confidence: Optional[float] = None


class OrchestrationDecisionService:
    def should_orchestrate(self, message: str, intents: List[Intent], threshold: float = 0.7) -> OrchestrationDecision:
        if len(intents) > 1:
            return OrchestrationDecision(True, f"Message contains {len(intents)} intents")

        intent = intents[0]
        if not requires_orchestration(message):
            return OrchestrationDecision(False, "Message does not contain orchestration keywords", intent.confidence)
        if intent.confidence < threshold:
            logging.info("Intent %s below orchestration threshold (%.2f < %.2f)", intent.type, intent.confidence, threshold)
            return OrchestrationDecision(
                False, f"Intent confidence ({intent.confidence}) below threshold ({threshold})", intent.confidence
            )
        return OrchestrationDecision(
            True, "Message requires orchestration and has sufficient confidence", intent.confidence
        )
