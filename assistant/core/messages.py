from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from assistant.core.images import ImageEncoder, encode_image
from assistant.core.prompt import IMAGE_FALLBACK_PROMPT, SYSTEM_PROMPT
from assistant.errors import InvalidRequest


Role = Literal["system", "user", "assistant"]


class TextPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Inline image carried inside a user turn."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    mime_type: str
    data: str = Field(..., description="Base64-encoded image bytes")
    detail: Literal["low", "high", "auto"] = "high"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class Message(BaseModel):
    """One turn of a conversation.

    ``content`` is either plain text or, for user turns only, an ordered list
    of text and image parts.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: Union[str, List[ContentPart]]

    @model_validator(mode="after")
    def _only_user_turns_carry_parts(self) -> "Message":
        if not isinstance(self.content, str) and self.role != "user":
            raise ValueError(f"{self.role} messages must have plain text content")
        return self

    @property
    def is_mixed(self) -> bool:
        return not isinstance(self.content, str)

    @property
    def text(self) -> str:
        """Plain-text view of the content, images omitted."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart))


def system_message() -> Message:
    return Message(role="system", content=SYSTEM_PROMPT)


def assistant_message(text: str) -> Message:
    return Message(role="assistant", content=text)


def compose_user_message(
    text: Optional[str],
    image_ref: Optional[str] = None,
    encoder: ImageEncoder = encode_image,
) -> Message:
    """Build the user turn for raw chat input.

    With an image the content is mixed: the text (or a fallback question)
    followed by the inline image. Without one the text is kept verbatim and
    must be non-empty.
    """
    if image_ref:
        image = encoder(image_ref)
        parts: List[ContentPart] = [
            TextPart(text=text or IMAGE_FALLBACK_PROMPT),
            ImagePart(mime_type=image.mime_type, data=image.data, detail="high"),
        ]
        return Message(role="user", content=parts)

    if not text:
        raise InvalidRequest("A message or an image is required.")
    return Message(role="user", content=text)
