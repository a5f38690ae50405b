"""fal.ai backend.

Requests ``sync_mode`` so the image normally arrives in the first
response. When the queue endpoint answers with a request id instead, the
job is polled through its status URL and the result fetched once it
completes.
"""

import logging
from typing import Any

from slideflux.prompt import AspectRatio, ImagePrompt

from .base import (
    AdapterOutput,
    GenerationAttempt,
    JobState,
    JobStatus,
    ProviderAdapter,
)
from .config import ProviderConfig
from .spec import ProviderType

logger = logging.getLogger(__name__)

IMAGE_SIZES = {
    AspectRatio.WIDESCREEN: "landscape_16_9",
    AspectRatio.STANDARD: "landscape_4_3",
}

_PENDING = {"IN_QUEUE", "IN_PROGRESS"}
_FAILED = {"FAILED", "ERROR"}


class FalAdapter(ProviderAdapter):
    """fal.ai backend (synchronous, queue fallback)."""

    provider = ProviderType.FAL

    def auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        return {"Authorization": f"Key {config.api_key}"}

    def build_body(self, prompt: ImagePrompt, seed: int) -> dict[str, Any]:
        return {
            "prompt": prompt.prompt,
            "image_size": IMAGE_SIZES[prompt.aspect_ratio],
            "num_inference_steps": prompt.num_inference_steps,
            "seed": seed,
            "enable_safety_checker": False,
            "sync_mode": True,
        }

    def generate(self, prompt: ImagePrompt, config: ProviderConfig) -> AdapterOutput:
        seed = self.next_seed()
        data = self.request_json("POST", config.base_url, config, json=self.build_body(prompt, seed))

        if "images" not in data and data.get("request_id"):
            data = self._wait_for_queue(data, config)

        return self.to_output(data, config, seed)

    def _wait_for_queue(self, data: dict[str, Any], config: ProviderConfig) -> dict[str, Any]:
        request_id = data["request_id"]
        attempt = GenerationAttempt(
            provider=self.name,
            job_id=request_id,
            payload=data,
            status_url=data.get("status_url") or f"{config.base_url}/requests/{request_id}/status",
            result_url=data.get("response_url") or f"{config.base_url}/requests/{request_id}",
        )
        logger.debug("fal request %s queued, polling", request_id)
        self.poll(attempt, lambda a: self.check_status(a, config))
        return self.request_json("GET", attempt.result_url, config)

    def check_status(self, attempt: GenerationAttempt, config: ProviderConfig) -> JobStatus:
        data = self.request_json("GET", attempt.status_url, config)
        raw = data.get("status")
        if raw == "COMPLETED":
            state = JobState.SUCCEEDED
        elif raw in _FAILED:
            state = JobState.FAILED
        else:
            if raw not in _PENDING:
                logger.debug("Unrecognised fal status %r, treating as pending", raw)
            state = JobState.PENDING
        return JobStatus(state=state, payload=data, error=data.get("error"), raw_status=raw)

    def to_output(self, data: dict[str, Any], config: ProviderConfig, seed: int) -> AdapterOutput:
        images = data.get("images")
        if not isinstance(images, list) or not images or not isinstance(images[0], dict):
            raise self.invalid_response("has no images")
        image = images[0]
        url = image.get("url")
        content = image.get("content")
        if not url and not content:
            raise self.invalid_response("image has neither url nor content")
        content_type = image.get("content_type") or "image/png"
        return AdapterOutput(
            image_url=url or f"data:{content_type};base64,{content}",
            image_base64=content,
            model_used=self.model_used(config),
            seed=data.get("seed", seed),
        )


__all__ = ["FalAdapter", "IMAGE_SIZES"]
