import json
from dataclasses import dataclass
from typing import Protocol

import httpx

from .config import ESTIMATOR_TIMEOUT_SECONDS, GEMINI_API_BASE, GEMINI_API_KEY, GEMINI_MODEL
from .errors import EstimatorUnavailable


PROMPT_TEMPLATE = """You are an expert cost estimator for home services in Bihar, India.
Based on the following details, provide a realistic estimated cost range in Indian Rupees (₹).

Service Type: {service_type}
Location: {district}, Bihar
Problem Description: {description}

Consider current market rates in Tier-2/Tier-3 cities of Bihar like Patna, Purnia, etc.
Provide the response in JSON format with the following structure:
{{
  "estimatedRange": "₹XXX - ₹YYY",
  "explanation": "Brief explanation of why this cost is estimated (e.g., parts, labor time).",
  "tips": "One or two tips for the customer to save money or prepare for the technician."
}}"""


@dataclass(frozen=True)
class Estimate:
    estimated_range: str
    explanation: str
    tips: str = ""


class CostEstimator(Protocol):
    async def estimate(self, service_type: str, description: str, district: str) -> Estimate: ...


def parse_estimate(payload: dict) -> Estimate:
    if not isinstance(payload, dict):
        raise EstimatorUnavailable("estimate is not a JSON object")

    estimated_range = payload.get("estimatedRange")
    if not isinstance(estimated_range, str) or not estimated_range.strip():
        raise EstimatorUnavailable("estimate has no estimatedRange")

    return Estimate(
        estimated_range=estimated_range.strip(),
        explanation=str(payload.get("explanation") or "").strip(),
        tips=str(payload.get("tips") or "").strip(),
    )


class GeminiCostEstimator:
    """
    Cost estimator backed by the Gemini generateContent REST endpoint.

    Any transport error, non-2xx answer or malformed body is reported as
    EstimatorUnavailable; the caller decides how to fall back.
    """

    def __init__(
        self,
        api_key: str | None = GEMINI_API_KEY,
        model: str = GEMINI_MODEL,
        base_url: str = GEMINI_API_BASE,
        timeout: float = ESTIMATOR_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _body(self, service_type: str, description: str, district: str) -> dict:
        prompt = PROMPT_TEMPLATE.format(
            service_type=service_type,
            district=district,
            description=description,
        )
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }

    async def estimate(self, service_type: str, description: str, district: str) -> Estimate:
        if not self.api_key:
            raise EstimatorUnavailable("GEMINI_API_KEY is not set")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self._url(),
                    params={"key": self.api_key},
                    json=self._body(service_type, description, district),
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException:
            raise EstimatorUnavailable("timeout calling estimator")
        except httpx.HTTPStatusError as e:
            raise EstimatorUnavailable(f"estimator answered {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            raise EstimatorUnavailable(f"bad estimator response: {e}")

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
            payload = json.loads(text or "{}")
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EstimatorUnavailable(f"unparseable estimator output: {e}")

        return parse_estimate(payload)


_default_estimator: CostEstimator | None = None


def get_estimator() -> CostEstimator:
    global _default_estimator
    if _default_estimator is None:
        _default_estimator = GeminiCostEstimator()
    return _default_estimator
