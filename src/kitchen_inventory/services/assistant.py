"""AI assistant: fridge photo recognition and cooking chat."""

import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from kitchen_inventory.domain.errors import AssistantError, InvalidInputError
from kitchen_inventory.domain.models import Ingredient
from kitchen_inventory.domain.recognition import IngredientDelta

RECOGNITION_PROMPT = """请识别这张图片中的食材，严格按照JSON格式返回：
[{"name": "食材名称", "quantity": 数量, "unit": "单位", "type": "类别"}]

要求：
1. quantity必须是数字
2. unit只能是: 个、根、片、袋、盒、份、g、颗、块、桶中的一个
3. type只能是: 蔬菜、肉类、调料、其他中的一个
4. 如果无法确定数量，默认设为1
5. 只返回JSON数组，不要任何解释文字"""

CHAT_SYSTEM_PROMPT = (
    "你是专业烹饪助手，请根据用户的冰箱食材和提出的需求，"
    "按照时下的季节和流行趋势提供符合当前季节的菜谱建议和详细烹饪方式。"
)

_CODE_FENCE = re.compile(r"```(?:json)?\s*")

_logger = logging.getLogger(__name__)


class AssistantClient(Protocol):
    """Interface for an OpenAI-compatible chat completion endpoint."""

    async def complete(
        self, *, model: str, messages: list[dict[str, object]], max_tokens: int
    ) -> str:
        """Return the assistant message text for a chat completion."""


@dataclass
class AssistantService:
    """Prepares assistant prompts and validates what comes back."""

    vision_client: AssistantClient | None
    chat_client: AssistantClient | None
    vision_model: str = "qwen3-vl-plus"
    chat_model: str = "deepseek-chat"

    async def recognize_ingredients(self, image_bytes: bytes) -> list[IngredientDelta]:
        """Detect ingredients and quantities in a fridge photo."""
        if self.vision_client is None:
            raise InvalidInputError("请先配置Qwen3-VL API密钥")
        messages: list[dict[str, object]] = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": RECOGNITION_PROMPT},
                    {"type": "image_url", "image_url": {"url": _to_data_url(image_bytes)}},
                ],
            }
        ]
        text = await self.vision_client.complete(
            model=self.vision_model, messages=messages, max_tokens=500
        )
        return parse_recognized_ingredients(text)

    async def chat(self, prompt: str, ingredients: list[Ingredient]) -> str:
        """Ask the cooking assistant, giving it the current fridge contents."""
        if self.chat_client is None:
            raise InvalidInputError("请先配置DeepSeek API密钥")
        question = prompt.strip()
        if not question:
            raise InvalidInputError("请输入问题")
        inventory = "、".join(f"{i.name}({i.quantity:g}{i.unit})" for i in ingredients)
        messages: list[dict[str, object]] = [
            {"role": "system", "content": CHAT_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"我的冰箱里有已有食材: {inventory or '暂无'}\n\n{question}",
            },
        ]
        return await self.chat_client.complete(
            model=self.chat_model, messages=messages, max_tokens=2000
        )

    async def check_connection(self, *, vision: bool = False) -> bool:
        """Send a tiny request to verify the configured API key."""
        client = self.vision_client if vision else self.chat_client
        if client is None:
            return False
        try:
            await client.complete(
                model=self.vision_model if vision else self.chat_model,
                messages=[{"role": "user", "content": "测试"}],
                max_tokens=10,
            )
        except AssistantError:
            return False
        return True


def parse_recognized_ingredients(text: str) -> list[IngredientDelta]:
    """Parse the model's JSON answer, dropping items that fail validation."""
    cleaned = _CODE_FENCE.sub("", text).strip()
    try:
        raw = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AssistantError("识别结果格式错误") from exc
    if not isinstance(raw, list):
        raise AssistantError("识别结果格式错误")
    items: list[IngredientDelta] = []
    for entry in raw:
        try:
            items.append(IngredientDelta.model_validate(entry))
        except ValidationError:
            _logger.warning("Skipping unrecognized ingredient entry: %s", entry)
    return items


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
