"""Together AI images backend (synchronous)."""

from typing import Any

from slideflux.prompt import AspectRatio, ImagePrompt

from .base import AdapterOutput, ProviderAdapter
from .config import ProviderConfig
from .spec import ProviderType

# (width, height) per aspect ratio
DIMENSIONS = {
    AspectRatio.WIDESCREEN: (1344, 768),
    AspectRatio.STANDARD: (1024, 768),
}


class TogetherAdapter(ProviderAdapter):
    """Together AI backend using the OpenAI-style images endpoint."""

    provider = ProviderType.TOGETHER

    def auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        return {"Authorization": f"Bearer {config.api_key}"}

    def build_body(self, prompt: ImagePrompt, config: ProviderConfig, seed: int) -> dict[str, Any]:
        width, height = DIMENSIONS[prompt.aspect_ratio]
        return {
            "model": config.model,
            "prompt": prompt.prompt,
            "width": width,
            "height": height,
            "steps": prompt.num_inference_steps,
            "guidance": prompt.guidance_scale,
            "seed": seed,
            "response_format": "url",
            "n": 1,
        }

    def generate(self, prompt: ImagePrompt, config: ProviderConfig) -> AdapterOutput:
        seed = self.next_seed()
        data = self.request_json(
            "POST", config.base_url, config, json=self.build_body(prompt, config, seed)
        )

        items = data.get("data")
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            raise self.invalid_response("has no data")
        item = items[0]
        url = item.get("url")
        b64 = item.get("b64_json")
        if not url and not b64:
            raise self.invalid_response("item has neither url nor b64_json")

        return AdapterOutput(
            image_url=url or f"data:image/png;base64,{b64}",
            image_base64=b64,
            model_used=self.model_used(config),
            seed=seed,
        )


__all__ = ["DIMENSIONS", "TogetherAdapter"]
