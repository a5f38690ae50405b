"""Replicate predictions backend.

Submits with ``Prefer: wait`` so short jobs finish in the initial
response; anything still running is polled via the prediction URL.
"""

import logging
from typing import Any

from slideflux.prompt import ImagePrompt

from .base import (
    AdapterOutput,
    AttemptState,
    GenerationAttempt,
    JobState,
    JobStatus,
    ProviderAdapter,
    ProviderCanceledError,
    ProviderReportedFailureError,
)
from .config import ProviderConfig
from .spec import ProviderType

logger = logging.getLogger(__name__)

_PENDING = {"starting", "processing"}


class ReplicateAdapter(ProviderAdapter):
    """Replicate backend (submit-and-wait, polls when needed)."""

    provider = ProviderType.REPLICATE

    def auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        return {"Authorization": f"Token {config.api_key}"}

    def build_body(self, prompt: ImagePrompt, config: ProviderConfig) -> dict[str, Any]:
        return {
            "version": config.model,
            "input": {
                "prompt": prompt.prompt,
                "negative_prompt": prompt.negative_prompt,
                "aspect_ratio": prompt.aspect_ratio.value,
                "guidance_scale": prompt.guidance_scale,
                "num_inference_steps": prompt.num_inference_steps,
                "output_format": "png",
                "output_quality": 100,
            },
        }

    def generate(self, prompt: ImagePrompt, config: ProviderConfig) -> AdapterOutput:
        data = self.request_json(
            "POST",
            config.base_url,
            config,
            json=self.build_body(prompt, config),
            headers={"Prefer": "wait"},
        )
        attempt = GenerationAttempt(provider=self.name, job_id=data.get("id"), payload=data)
        status = self.parse_status(data)

        if status.state is JobState.SUCCEEDED and data.get("output"):
            attempt.state = AttemptState.SUCCEEDED
        elif status.state is JobState.FAILED:
            raise ProviderReportedFailureError(
                f"Replicate prediction failed: {status.error or 'unknown error'}",
                provider=self.name,
            )
        elif status.state is JobState.CANCELED:
            raise ProviderCanceledError("Replicate prediction was canceled", provider=self.name)
        else:
            if not attempt.job_id:
                raise self.invalid_response("has no prediction id to poll")
            urls = data.get("urls") or {}
            attempt.status_url = urls.get("get") or f"{config.base_url}/{attempt.job_id}"
            logger.debug("Replicate prediction %s is %s, polling", attempt.job_id, status.raw_status)
            status = self.poll(attempt, lambda a: self.check_status(a, config))

        return self.to_output(status.payload, config)

    def check_status(self, attempt: GenerationAttempt, config: ProviderConfig) -> JobStatus:
        data = self.request_json("GET", attempt.status_url, config)
        return self.parse_status(data)

    def parse_status(self, data: dict[str, Any]) -> JobStatus:
        raw = data.get("status")
        if raw == "succeeded":
            state = JobState.SUCCEEDED
        elif raw == "failed":
            state = JobState.FAILED
        elif raw == "canceled":
            state = JobState.CANCELED
        else:
            if raw not in _PENDING:
                logger.debug("Unrecognised Replicate status %r, treating as pending", raw)
            state = JobState.PENDING
        return JobStatus(state=state, payload=data, error=data.get("error"), raw_status=raw)

    def to_output(self, data: dict[str, Any], config: ProviderConfig) -> AdapterOutput:
        output = data.get("output")
        if isinstance(output, list):
            output = output[0] if output else None
        if not isinstance(output, str) or not output:
            raise self.invalid_response("has no output image")
        return AdapterOutput(image_url=output, model_used=self.model_used(config))


__all__ = ["ReplicateAdapter"]
