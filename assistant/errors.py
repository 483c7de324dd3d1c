from __future__ import annotations

from typing import Any, Dict, Optional


class ChatError(Exception):
    """Base class for failures surfaced to the chat caller.

    Each subclass knows its HTTP status and the short message shown to the
    browser client, so the route layer only has to render ``to_body()``.
    """

    status_code: int = 500
    public_message: str = "An error occurred while processing your request."

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None) -> None:
        super().__init__(message or self.public_message)
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.public_message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequest(ChatError):
    status_code = 400
    public_message = "A message or an image is required."

    def to_body(self) -> Dict[str, Any]:
        # Our own wording, shown verbatim.
        return {"error": str(self)}


class ContentFiltered(ChatError):
    status_code = 400
    public_message = (
        "This image was filtered due to Azure OpenAI's content management policy. "
        "Please try a different image."
    )


class ConversationNotFound(ChatError):
    status_code = 404
    public_message = "Conversation not found."


class ResourceUnavailable(ChatError):
    status_code = 500
    public_message = "An error occurred while processing your request."


class ProviderError(ChatError):
    status_code = 500
    public_message = "An error occurred while processing your request."
