"""Image description tool."""

from __future__ import annotations

import base64

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from shehab.core.model import ModelClient
from shehab.errors import ModelUnavailableError
from shehab.tools.registry import ToolDefinition

DEFAULT_VISION_PROMPT = "Describe this image technically."
UNAVAILABLE_MESSAGE = "[System Message]: Vision tool unavailable. Inform the user you cannot see the image right now."
SLACK_HOST_SUFFIX = ".slack.com"


class DescribeImageInput(BaseModel):
    image_url: str = Field(..., description="URL of the image (Slack private URLs are supported)")
    prompt: str | None = Field(default=None, description="What to look for in the image")


class ImageDescriber:
    """Downloads an image and asks the model to describe it."""

    def __init__(self, client: httpx.AsyncClient, model: ModelClient, *, token: str | None = None) -> None:
        self._client = client
        self._model = model
        self._token = token

    async def describe(self, image_url: str, prompt: str | None = None) -> str:
        headers = {"Accept": "image/*"}
        if self._token and _is_slack_host(image_url):
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            response = await self._client.get(image_url, headers=headers, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("vision.download.error error={}", exc)
            return UNAVAILABLE_MESSAGE

        mime_type = response.headers.get("content-type", "image/png").split(";")[0].strip()
        if mime_type.startswith("text/") or mime_type == "application/json":
            logger.warning("vision.download.not_image mime={}", mime_type)
            return (
                f"[System Message]: Could not download the image (received {mime_type}). "
                "Inform the user the vision feature is temporarily unavailable."
            )

        data_url = f"data:{mime_type};base64,{base64.b64encode(response.content).decode('ascii')}"
        message = {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt or DEFAULT_VISION_PROMPT},
                {"type": "image_url", "image_url": {"url": data_url}},
            ],
        }
        try:
            reply = await self._model.complete([message])
        except ModelUnavailableError as exc:
            logger.warning("vision.model.error error={}", exc)
            return UNAVAILABLE_MESSAGE
        return f"[IMAGE ANALYSIS]: {reply.text or ''}".strip()


def _is_slack_host(url: str) -> bool:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return False
    host = parsed.host.lower()
    return parsed.scheme == "https" and (host == "slack.com" or host.endswith(SLACK_HOST_SUFFIX))

def create_vision_tool(describer: ImageDescriber) -> ToolDefinition:
    async def _handler(params: DescribeImageInput) -> str:
        return await describer.describe(params.image_url, params.prompt)

    return ToolDefinition.from_model(
        DescribeImageInput,
        _handler,
        name="describe_image",
        description="Describe the content of an image shared in the conversation",
        notice="📸 Looking at the image...",
    )
