"""Toxicity scoring for user-submitted text via the Google Perspective API."""

import logging
import time
from typing import Any, Dict, Optional, Sequence

import httpx

from app.core.metrics import MODERATION_VERDICTS, PROVIDER_FAILURES, PROVIDER_LATENCY
from app.schemas.moderation import ModerationAction, ModerationVerdict

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    "TOXICITY",
    "SEVERE_TOXICITY",
    "IDENTITY_ATTACK",
    "INSULT",
    "PROFANITY",
    "THREAT",
)


def _category_label(category: str) -> str:
    return category.lower().replace("_", " ")


def _percent(score: float) -> int:
    return int(score * 100 + 0.5)


def _summary_score(attribute_scores: Dict[str, Any], category: str) -> float:
    entry = attribute_scores.get(category)
    if not isinstance(entry, dict):
        return 0.0
    summary = entry.get("summaryScore")
    if not isinstance(summary, dict):
        return 0.0
    value = summary.get("value")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


class PerspectiveToxicityScorer:
    """Maps Perspective category scores to an approve / shadow / reject verdict.

    The verdict is driven by the single highest category score. Provider
    failures never propagate: HTTP errors, timeouts and malformed payloads
    shadow the content for manual review; connection failures follow
    ``network_failure_action``.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        timeout: float = 5.0,
        reject_threshold: float = 0.85,
        shadow_threshold: float = 0.6,
        categories: Sequence[str] = DEFAULT_CATEGORIES,
        languages: Sequence[str] = ("en",),
        network_failure_action: ModerationAction = ModerationAction.SHADOWED,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if shadow_threshold > reject_threshold:
            raise ValueError("shadow threshold must not exceed reject threshold")
        if network_failure_action == ModerationAction.REJECTED:
            raise ValueError("network_failure_action must be 'shadow' or 'approved'")
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.reject_threshold = reject_threshold
        self.shadow_threshold = shadow_threshold
        self.categories = tuple(categories)
        self.languages = list(languages)
        self.network_failure_action = network_failure_action
        self._transport = transport

        if not api_key:
            logger.warning("PERSPECTIVE_API_KEY not set; all non-empty text will be held for review")

    def build_verdict(self, attribute_scores: Dict[str, Any]) -> ModerationVerdict:
        """Derive a verdict from the provider's ``attributeScores`` mapping."""
        if not isinstance(attribute_scores, dict):
            attribute_scores = {}

        scores: Dict[str, float] = {}
        max_score = 0.0
        max_category = ""
        for category in self.categories:
            score = _summary_score(attribute_scores, category)
            scores[category] = score
            if score > max_score:
                max_score = score
                max_category = category

        if max_score >= self.reject_threshold:
            return ModerationVerdict(
                action=ModerationAction.REJECTED,
                scores=scores,
                reason=f"High {_category_label(max_category)} detected ({_percent(max_score)}%)",
            )
        if max_score >= self.shadow_threshold:
            return ModerationVerdict(
                action=ModerationAction.SHADOWED,
                scores=scores,
                reason=(
                    f"Moderate {_category_label(max_category)} detected "
                    f"({_percent(max_score)}%) - requires manual review"
                ),
            )
        return ModerationVerdict(
            action=ModerationAction.APPROVED,
            scores=scores,
            reason="Content appears safe",
        )

    def _fallback(self, kind: str, action: ModerationAction, reason: str) -> ModerationVerdict:
        PROVIDER_FAILURES.labels(kind=kind).inc()
        return ModerationVerdict(action=action, scores={}, reason=reason)

    async def score(self, text: str) -> ModerationVerdict:
        if not text or not text.strip():
            return ModerationVerdict(action=ModerationAction.APPROVED, scores={}, reason="Empty text")

        verdict = await self._score_remote(text)
        MODERATION_VERDICTS.labels(action=verdict.action.value).inc()
        return verdict

    async def _score_remote(self, text: str) -> ModerationVerdict:
        if not self.api_key:
            return self._fallback(
                "not_configured",
                ModerationAction.SHADOWED,
                "Moderation API not configured - requires manual review",
            )

        request_data = {
            "comment": {"text": text},
            "requestedAttributes": {category: {} for category in self.categories},
            "languages": self.languages,
        }

        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.base_url,
                    params={"key": self.api_key},
                    json=request_data,
                )
        except httpx.TimeoutException:
            logger.warning("Perspective API timed out after %.1fs", self.timeout)
            return self._fallback(
                "timeout",
                ModerationAction.SHADOWED,
                "API error (timeout) - requires manual review",
            )
        except httpx.TransportError as e:
            logger.error("Perspective API unreachable: %s", e)
            if self.network_failure_action == ModerationAction.APPROVED:
                return self._fallback(
                    "network",
                    ModerationAction.APPROVED,
                    "API error - auto-approved for user experience",
                )
            return self._fallback(
                "network",
                ModerationAction.SHADOWED,
                "API error - requires manual review",
            )
        except httpx.RequestError as e:
            # bad content encoding, redirect loops
            logger.error("Perspective API request failed: %s", e)
            return self._fallback(
                "bad_payload",
                ModerationAction.SHADOWED,
                "API error (invalid response) - requires manual review",
            )
        finally:
            PROVIDER_LATENCY.observe(time.perf_counter() - started)

        if not response.is_success:
            logger.error(
                "Perspective API error: %s %s", response.status_code, response.reason_phrase
            )
            return self._fallback(
                "http_status",
                ModerationAction.SHADOWED,
                f"API error ({response.status_code}) - requires manual review",
            )

        try:
            data = response.json()
        except ValueError:
            logger.error("Perspective API returned a non-JSON body")
            return self._fallback(
                "bad_payload",
                ModerationAction.SHADOWED,
                "API error (invalid response) - requires manual review",
            )

        attribute_scores = data.get("attributeScores") if isinstance(data, dict) else None
        verdict = self.build_verdict(attribute_scores or {})
        logger.info("Toxicity verdict %s: %s", verdict.action.value, verdict.reason)
        return verdict
