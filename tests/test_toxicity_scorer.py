"""Unit tests for the Perspective toxicity scorer: thresholds, payload shapes, fallbacks."""
import asyncio
import json

import httpx
import pytest

API_URL = "https://perspective.test/v1alpha1/comments:analyze"


def _payload(**scores):
    return {
        "attributeScores": {
            category: {"summaryScore": {"value": value}}
            for category, value in scores.items()
        }
    }


def _scorer(handler, **kwargs):
    from app.services.toxicity_scorer import PerspectiveToxicityScorer
    kwargs.setdefault("api_key", "test-key")
    return PerspectiveToxicityScorer(
        base_url=API_URL,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _responding(body, status_code=200, calls=None):
    def handler(request):
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=body)
    return handler


def _score(scorer, text):
    return asyncio.run(scorer.score(text))


# ── Empty text ────────────────────────────────────────────────────────────

@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_text_is_approved_without_api_call(text):
    from app.schemas.moderation import ModerationAction
    calls = []
    verdict = _score(_scorer(_responding(_payload(TOXICITY=0.99), calls=calls)), text)
    assert verdict.action == ModerationAction.APPROVED
    assert verdict.scores == {}
    assert calls == []


# ── Thresholds ────────────────────────────────────────────────────────────

def test_threat_above_reject_threshold_is_rejected():
    from app.schemas.moderation import ModerationAction
    verdict = _score(_scorer(_responding(_payload(THREAT=0.9, TOXICITY=0.3))), "some text")
    assert verdict.action == ModerationAction.REJECTED
    assert verdict.reason == "High threat detected (90%)"
    assert verdict.scores["THREAT"] == 0.9


def test_reject_threshold_is_inclusive():
    from app.schemas.moderation import ModerationAction
    verdict = _score(_scorer(_responding(_payload(INSULT=0.85))), "text")
    assert verdict.action == ModerationAction.REJECTED


def test_moderate_score_is_shadowed_with_manual_review_reason():
    from app.schemas.moderation import ModerationAction
    verdict = _score(_scorer(_responding(_payload(SEVERE_TOXICITY=0.7))), "text")
    assert verdict.action == ModerationAction.SHADOWED
    assert verdict.reason == "Moderate severe toxicity detected (70%) - requires manual review"


def test_shadow_threshold_is_inclusive():
    from app.schemas.moderation import ModerationAction
    verdict = _score(_scorer(_responding(_payload(PROFANITY=0.6))), "text")
    assert verdict.action == ModerationAction.SHADOWED


def test_just_below_reject_threshold_is_shadowed():
    from app.schemas.moderation import ModerationAction
    verdict = _score(_scorer(_responding(_payload(TOXICITY=0.849))), "text")
    assert verdict.action == ModerationAction.SHADOWED


def test_low_scores_are_approved():
    from app.schemas.moderation import ModerationAction
    verdict = _score(_scorer(_responding(_payload(TOXICITY=0.59, INSULT=0.2))), "tasty pasta")
    assert verdict.action == ModerationAction.APPROVED
    assert verdict.reason == "Content appears safe"


@pytest.mark.parametrize(
    "category",
    ["TOXICITY", "SEVERE_TOXICITY", "IDENTITY_ATTACK", "INSULT", "PROFANITY", "THREAT"],
)
def test_any_category_can_trigger_rejection(category):
    from app.schemas.moderation import ModerationAction
    scores = {c: 0.1 for c in ["TOXICITY", "SEVERE_TOXICITY", "IDENTITY_ATTACK", "INSULT", "PROFANITY", "THREAT"]}
    scores[category] = 0.95
    verdict = _score(_scorer(_responding(_payload(**scores))), "text")
    assert verdict.action == ModerationAction.REJECTED


def test_verdict_uses_max_not_average():
    from app.schemas.moderation import ModerationAction
    # average is ~0.2, max is 0.9
    verdict = _score(_scorer(_responding(_payload(THREAT=0.9, TOXICITY=0.05, INSULT=0.05))), "text")
    assert verdict.action == ModerationAction.REJECTED


# ── Payload shapes ────────────────────────────────────────────────────────

def test_missing_categories_default_to_zero():
    verdict = _score(_scorer(_responding(_payload(TOXICITY=0.1))), "text")
    assert verdict.scores["THREAT"] == 0.0
    assert len(verdict.scores) == 6


def test_malformed_category_entries_count_as_zero():
    from app.schemas.moderation import ModerationAction
    body = {
        "attributeScores": {
            "TOXICITY": "high",
            "THREAT": {"summaryScore": {"value": "0.99"}},
            "INSULT": {"summaryScore": None},
        }
    }
    verdict = _score(_scorer(_responding(body)), "text")
    assert verdict.action == ModerationAction.APPROVED
    assert all(v == 0.0 for v in verdict.scores.values())


def test_missing_attribute_scores_is_approved():
    from app.schemas.moderation import ModerationAction
    verdict = _score(_scorer(_responding({"languages": ["en"]})), "text")
    assert verdict.action == ModerationAction.APPROVED


def test_request_carries_key_text_and_all_categories():
    calls = []
    _score(_scorer(_responding(_payload(TOXICITY=0.1), calls=calls)), "the soup was cold")
    assert len(calls) == 1
    request = calls[0]
    assert request.url.params["key"] == "test-key"
    body = json.loads(request.content)
    assert body["comment"]["text"] == "the soup was cold"
    assert set(body["requestedAttributes"]) == {
        "TOXICITY", "SEVERE_TOXICITY", "IDENTITY_ATTACK", "INSULT", "PROFANITY", "THREAT",
    }
    assert body["languages"] == ["en"]


def test_build_verdict_is_deterministic():
    from app.services.toxicity_scorer import PerspectiveToxicityScorer
    scorer = PerspectiveToxicityScorer(api_key="k", base_url=API_URL)
    raw = _payload(INSULT=0.7, THREAT=0.65)["attributeScores"]
    assert scorer.build_verdict(raw) == scorer.build_verdict(raw)


# ── Fallbacks ─────────────────────────────────────────────────────────────

def test_http_error_is_shadowed_with_empty_scores():
    from app.schemas.moderation import ModerationAction
    verdict = _score(_scorer(_responding({"error": "unavailable"}, status_code=503)), "text")
    assert verdict.action == ModerationAction.SHADOWED
    assert verdict.scores == {}
    assert "API error" in verdict.reason


def test_timeout_is_treated_like_http_error():
    from app.schemas.moderation import ModerationAction

    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    verdict = _score(_scorer(handler), "text")
    assert verdict.action == ModerationAction.SHADOWED
    assert "API error" in verdict.reason


def test_network_failure_is_shadowed_by_default():
    from app.schemas.moderation import ModerationAction

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    verdict = _score(_scorer(handler), "text")
    assert verdict.action == ModerationAction.SHADOWED
    assert verdict.scores == {}


def test_network_failure_can_fail_open():
    from app.schemas.moderation import ModerationAction

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    verdict = _score(_scorer(handler, network_failure_action=ModerationAction.APPROVED), "text")
    assert verdict.action == ModerationAction.APPROVED
    assert "auto-approved" in verdict.reason


def test_non_json_body_is_shadowed():
    from app.schemas.moderation import ModerationAction

    def handler(request):
        return httpx.Response(200, content=b"<html>oops</html>")

    verdict = _score(_scorer(handler), "text")
    assert verdict.action == ModerationAction.SHADOWED


def test_missing_api_key_shadows_without_call():
    from app.schemas.moderation import ModerationAction
    calls = []
    verdict = _score(_scorer(_responding(_payload(), calls=calls), api_key=None), "text")
    assert verdict.action == ModerationAction.SHADOWED
    assert calls == []


def test_invalid_threshold_order_is_rejected():
    from app.services.toxicity_scorer import PerspectiveToxicityScorer
    with pytest.raises(ValueError):
        PerspectiveToxicityScorer(api_key="k", base_url=API_URL, reject_threshold=0.5, shadow_threshold=0.7)


def test_undecodable_body_is_shadowed():
    from app.schemas.moderation import ModerationAction

    def handler(request):
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not-gzip")

    verdict = _score(_scorer(handler), "hello")
    assert verdict.action == ModerationAction.SHADOWED
    assert verdict.scores == {}
    assert "API error" in verdict.reason
