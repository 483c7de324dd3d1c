from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Optional

from pydantic import BaseModel

from assistant.completion import CompletionInvoker
from assistant.core.images import ImageEncoder, encode_image
from assistant.core.memory import ConversationStore
from assistant.core.messages import compose_user_message


logger = logging.getLogger("visionchat.orchestrator")


class TurnResult(BaseModel):
    reply: str
    conversation_id: str


class ChatOrchestrator:
    """Runs one user turn against a stored conversation.

    Nothing is written to the store unless the provider replied: the user
    turn and the assistant turn are persisted together in a single ``save``.
    """

    def __init__(
        self,
        store: ConversationStore,
        invoker: CompletionInvoker,
        encoder: ImageEncoder = encode_image,
    ) -> None:
        self.store = store
        self.invoker = invoker
        self.encoder = encoder

    def handle_turn(
        self,
        conversation_id: Optional[str],
        text: Optional[str],
        image_ref: Optional[str] = None,
    ) -> TurnResult:
        guard = self.store.locked(conversation_id) if conversation_id else nullcontext()
        with guard:
            resolved_id, history = self.store.resolve(conversation_id)
            logger.info(
                "Turn for conversation=%s prior_messages=%s text_len=%s image=%s",
                resolved_id or "<new>",
                len(history),
                len(text or ""),
                bool(image_ref),
            )

            history.append(compose_user_message(text, image_ref, encoder=self.encoder))
            reply = self.invoker.complete(history)
            history.append(reply)

            if resolved_id is None:
                resolved_id = self.store.mint_id()
                logger.info("Minted conversation id %s", resolved_id)
            self.store.save(resolved_id, history)

        return TurnResult(reply=reply.text, conversation_id=resolved_id)
