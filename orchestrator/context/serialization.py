from .types import ConversationContext


def serialize_context(context: ConversationContext) -> str:
    return context.model_dump_json()


def deserialize_context(raw: str) -> ConversationContext:
    return ConversationContext.model_validate_json(raw)
