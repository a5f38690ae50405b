"""Black Forest Labs backend (submit then poll).

Jobs are submitted to ``{base_url}/{model}``; the response carries a job
id and usually a ``polling_url``. Without one, the legacy
``{base_url}/get_result?id=`` endpoint is polled.
"""

import logging
from typing import Any

from slideflux.prompt import ImagePrompt

from .base import (
    AdapterOutput,
    GenerationAttempt,
    JobState,
    JobStatus,
    ProviderAdapter,
)
from .config import ProviderConfig
from .spec import ProviderType
from .together import DIMENSIONS

logger = logging.getLogger(__name__)

SAFETY_TOLERANCE = 2

_PENDING = {"Pending", "Queued", "Processing"}
_FAILED = {"Failed", "Error", "Request Moderated", "Content Moderated", "Task not found"}


class BFLAdapter(ProviderAdapter):
    """Black Forest Labs official API."""

    provider = ProviderType.BFL

    def auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        return {"X-Key": config.api_key}

    def build_body(self, prompt: ImagePrompt, seed: int) -> dict[str, Any]:
        width, height = DIMENSIONS[prompt.aspect_ratio]
        return {
            "prompt": prompt.prompt,
            "width": width,
            "height": height,
            "steps": prompt.num_inference_steps,
            "guidance": prompt.guidance_scale,
            "safety_tolerance": SAFETY_TOLERANCE,
            "seed": seed,
        }

    def generate(self, prompt: ImagePrompt, config: ProviderConfig) -> AdapterOutput:
        seed = self.next_seed()
        data = self.request_json(
            "POST", f"{config.base_url}/{config.model}", config, json=self.build_body(prompt, seed)
        )

        job_id = data.get("id")
        if not job_id:
            raise self.invalid_response("has no job id")

        attempt = GenerationAttempt(
            provider=self.name,
            job_id=job_id,
            payload=data,
            status_url=data.get("polling_url"),
        )
        status = self.poll(attempt, lambda a: self.check_status(a, config))

        result = status.payload.get("result")
        sample = result.get("sample") if isinstance(result, dict) else None
        if not sample:
            raise self.invalid_response("is Ready but has no result.sample")

        return AdapterOutput(image_url=sample, model_used=self.model_used(config), seed=seed)

    def check_status(self, attempt: GenerationAttempt, config: ProviderConfig) -> JobStatus:
        if attempt.status_url:
            data = self.request_json("GET", attempt.status_url, config)
        else:
            data = self.request_json(
                "GET", f"{config.base_url}/get_result", config, params={"id": attempt.job_id}
            )

        raw = data.get("status")
        if raw == "Ready":
            state = JobState.SUCCEEDED
        elif raw in _FAILED:
            state = JobState.FAILED
        else:
            if raw not in _PENDING:
                logger.debug("Unrecognised BFL status %r, treating as pending", raw)
            state = JobState.PENDING
        error = raw if state is JobState.FAILED else None
        return JobStatus(state=state, payload=data, error=error, raw_status=raw)


__all__ = ["BFLAdapter"]
