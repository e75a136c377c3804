"""Pydantic request schemas for the chat and generate endpoints."""
from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel

from ..providers.base import GenerationOptions


class RequestOptions(BaseModel):
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    num_predict: Optional[int] = None

    class Config:
        # Local model servers accept many more options (seed, num_ctx, ...); unknown ones are ignored.
        extra = "allow"

    def to_generation_options(self) -> GenerationOptions:
        max_output_tokens = self.num_predict
        if max_output_tokens is not None and max_output_tokens <= 0:
            # -1 / -2 mean "unlimited" / "fill context" locally.
            max_output_tokens = None
        return GenerationOptions(
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
            max_output_tokens=max_output_tokens,
        )


class ChatMessage(BaseModel):
    role: Optional[str] = None
    content: Optional[Union[str, List[Dict[str, Any]]]] = None
    images: Optional[List[str]] = None

    class Config:
        extra = "allow"


class _GenerationRequest(BaseModel):
    envelope_key: ClassVar[str]

    model: Optional[str] = None
    options: Optional[RequestOptions] = None
    stream: Optional[bool] = False

    class Config:
        extra = "allow"

    @property
    def streaming(self) -> bool:
        return bool(self.stream)

    def generation_options(self) -> GenerationOptions:
        if self.options is None:
            return GenerationOptions()
        return self.options.to_generation_options()

    def echo_context(self) -> Optional[List[Any]]:
        return None


class ChatRequest(_GenerationRequest):
    envelope_key: ClassVar[str] = "message"

    messages: Optional[List[ChatMessage]] = None

    def has_images(self) -> bool:
        return any(msg.images for msg in self.messages or [])


class GenerateRequest(_GenerationRequest):
    envelope_key: ClassVar[str] = "response"

    prompt: Optional[str] = None
    system: Optional[str] = None
    images: Optional[List[str]] = None
    context: Optional[List[Any]] = None

    def has_images(self) -> bool:
        return bool(self.images)

    def echo_context(self) -> Optional[List[Any]]:
        return list(self.context or [])


RequestShape = Union[ChatRequest, GenerateRequest]
