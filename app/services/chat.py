import logging
from typing import Protocol

from app.config import Settings
from app.errors import MissingInput
from app.schemas.chat import ChatRequest, ChatResponse, ChatRole, Intent, IntentResult
from app.services.llm import ModelClient

logger = logging.getLogger(__name__)

# Stand-in until replies are linked to real catalog products.
PLACEHOLDER_PRODUCT_ID = "12345"

PURCHASE_KEYWORDS = (
    "comprar",
    "compra",
    "precio",
    "producto",
    "talla",
    "disponible",
    "stock",
    "catálogo",
    "catalogo",
    "envío",
    "pedido",
    "buy",
    "price",
    "product",
)


class IntentClassifier(Protocol):
    def classify(self, reply: str) -> IntentResult: ...


class KeywordIntentClassifier:
    """Substring match on purchase terms. Not a real classifier."""

    def __init__(self, keywords: tuple[str, ...] = PURCHASE_KEYWORDS):
        self.keywords = keywords

    def classify(self, reply: str) -> IntentResult:
        lowered = (reply or "").lower()
        if any(word in lowered for word in self.keywords):
            return IntentResult(intent=Intent.SEARCH_PRODUCT, product_id=PLACEHOLDER_PRODUCT_ID)
        return IntentResult(intent=Intent.GENERAL, product_id=None)


class ChatService:
    def __init__(self, settings: Settings, llm: ModelClient, classifier: IntentClassifier | None = None):
        self.settings = settings
        self.llm = llm
        self.classifier = classifier or KeywordIntentClassifier()

    def build_conversation(self, req: ChatRequest) -> tuple[str, list[dict]]:
        """Split a request into (system prompt, alternating user/assistant turns)."""
        system_parts = [req.system or self.settings.default_system_prompt]
        turns: list[dict] = []
        for msg in req.messages:
            if msg.role == ChatRole.SYSTEM:
                system_parts.append(msg.content)
                continue
            if not msg.content.strip():
                continue
            # the API rejects consecutive turns from the same role, merge them
            if turns and turns[-1]["role"] == msg.role.value:
                turns[-1]["content"] += "\n" + msg.content
            else:
                turns.append({"role": msg.role.value, "content": msg.content})

        if req.message and req.message.strip():
            if turns and turns[-1]["role"] == ChatRole.USER.value:
                turns[-1]["content"] += "\n" + req.message
            else:
                turns.append({"role": ChatRole.USER.value, "content": req.message})

        if not turns or turns[0]["role"] != ChatRole.USER.value:
            if not turns:
                raise MissingInput("message or messages is required")
            turns.insert(0, {"role": ChatRole.USER.value, "content": "(inicio de la conversación)"})

        return "\n\n".join(system_parts), turns

    async def complete(self, req: ChatRequest) -> ChatResponse:
        system, turns = self.build_conversation(req)
        temperature = req.temperature if req.temperature is not None else self.settings.default_temperature

        reply = await self.llm.complete(
            model=req.model or self.settings.text_model,
            system=system,
            messages=turns,
            max_tokens=self.settings.chat_max_tokens,
            temperature=temperature,
            operation="chat completion",
        )

        result = self.classifier.classify(reply)
        logger.debug("Chat reply classified as %s", result.intent)
        return ChatResponse(reply=reply, intent=result.intent, product_id=result.product_id)
