from __future__ import annotations

import logging
from typing import Any, List, Optional

import openai
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import AzureChatOpenAI

from assistant.core.messages import ImagePart, Message, assistant_message
from assistant.errors import ContentFiltered, ProviderError
from config.settings import Settings, get_settings


logger = logging.getLogger("visionchat.completion")

TEMPERATURE = 0.7
MAX_TOKENS = 800
CONTENT_FILTER_CODE = "content_filter"


def build_llm(settings: Optional[Settings] = None) -> BaseChatModel:
    settings = settings or get_settings()
    endpoint = settings.azure_endpoint_url()

    logger.info(
        "Azure OpenAI config: endpoint=%s deployment=%s api_version=%s key_set=%s",
        endpoint,
        settings.azure_openai_deployment,
        settings.azure_openai_api_version,
        bool(settings.azure_openai_key),
    )

    # No retries: provider failures surface on the first attempt.
    return AzureChatOpenAI(
        azure_endpoint=endpoint,
        azure_deployment=settings.azure_openai_deployment,
        api_key=settings.azure_openai_key,
        api_version=settings.azure_openai_api_version,
        temperature=TEMPERATURE,
        max_tokens=MAX_TOKENS,
        timeout=settings.request_timeout,
        max_retries=0,
    )


def _lc_content(message: Message) -> Any:
    if isinstance(message.content, str):
        return message.content
    parts = []
    for part in message.content:
        if isinstance(part, ImagePart):
            parts.append(
                {
                    "type": "image_url",
                    "image_url": {"url": part.data_url, "detail": part.detail},
                }
            )
        else:
            parts.append({"type": "text", "text": part.text})
    return parts


def to_lc_messages(history: List[Message]) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    for item in history:
        content = _lc_content(item)
        if item.role == "system":
            messages.append(SystemMessage(content=content))
        elif item.role == "assistant":
            messages.append(AIMessage(content=content))
        else:
            messages.append(HumanMessage(content=content))
    return messages


def _error_details(exc: openai.APIStatusError) -> Optional[str]:
    body = exc.body
    if isinstance(body, dict):
        inner = body.get("error") if isinstance(body.get("error"), dict) else body
        message = inner.get("message")
        if message:
            return str(message)
    return exc.message or None


class CompletionInvoker:
    """Sends a conversation to the chat model and classifies failures."""

    def __init__(self, llm: Optional[BaseChatModel] = None) -> None:
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = build_llm()
        return self._llm

    def complete(self, history: List[Message]) -> Message:
        try:
            result = self.llm.invoke(to_lc_messages(history))
        except openai.BadRequestError as exc:
            if exc.code == CONTENT_FILTER_CODE:
                details = _error_details(exc)
                logger.warning("Provider content filter rejected request: %s", details)
                raise ContentFiltered(details=details) from exc
            logger.warning("Provider rejected request: %s", exc)
            raise ProviderError(str(exc)) from exc
        except openai.OpenAIError as exc:
            logger.warning("Provider call failed: %s: %s", type(exc).__name__, exc)
            raise ProviderError(str(exc)) from exc
        except Exception as exc:
            logger.exception("Unexpected failure calling the chat model")
            raise ProviderError(str(exc)) from exc

        finish_reason = (result.response_metadata or {}).get("finish_reason")
        if finish_reason == CONTENT_FILTER_CODE:
            logger.warning("Provider filtered the generated reply")
            raise ContentFiltered(details="The generated reply was filtered by the content policy.")

        text = result.content if isinstance(result.content, str) else ""
        if not text:
            raise ProviderError("Provider returned an empty reply")

        logger.info("Provider replied with %s chars", len(text))
        return assistant_message(text)
