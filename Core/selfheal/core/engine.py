"""Self-healing decision engine.

One call to :meth:`SelfHealingEngine.heal` is one resolution attempt: reset to
the top-level document, try a cheap DOM rewrite, otherwise gather candidates,
ask the scoring service for a suggestion and run that suggestion through the
ad, intent, uniqueness and action checks. Every outcome is a ``HealResult``;
failures below the engine are folded into ``MANUAL_REVIEW_*`` decisions.
"""

from __future__ import annotations

import logging
from typing import Any

from selfheal.config.schema import HealingConfig
from selfheal.core.descriptor import (
    is_xpath_locator,
    parse_descriptor,
    quoted_literals,
    xpath_literal,
)
from selfheal.core.exceptions import HealServiceError
from selfheal.core.metadata import ActionKind, HealDecision, HealEvent, HealResult
from selfheal.core.verification import PageVerifier, is_ad_like_xpath
from selfheal.logging.sinks import HealEventSink, LoggingEventSink
from selfheal.service.client import HealServiceClient, create_heal_service_client
from selfheal.service.dto import Candidate, HealResponse, build_heal_request
from selfheal.utils.dom_extract import CandidateExtractor, selector_for_action
from selfheal.utils.text_match import mentions_intent

logger = logging.getLogger(__name__)

FALLBACK_HINT_MIN_LENGTH = 2
FALLBACK_HINT_MAX_LENGTH = 60
SERVICE_AUTO_HEAL = "auto_heal"
SERVICE_MANUAL_REVIEW = "manual_review"


class SelfHealingEngine:
    """Resolves a failed XPath locator into a verified replacement or a review decision."""

    def __init__(
        self,
        driver,
        config: HealingConfig,
        client: HealServiceClient | None = None,
        extractor: CandidateExtractor | None = None,
        sink: HealEventSink | None = None,
    ) -> None:
        self.driver = driver
        self.config = config
        self.client = client or create_heal_service_client(config)
        self.extractor = extractor or CandidateExtractor(driver)
        self.verifier = PageVerifier(driver)
        self.sink = sink or LoggingEventSink()

    def heal(self, locator, action: ActionKind | None = None) -> HealResult | None:
        """Returns ``None`` when healing is not attempted at all."""

        if not self.config.enabled:
            self._emit("gate", "healing disabled", locator=_describe(locator))
            return None
        if not is_xpath_locator(locator):
            self._emit("gate", "only xpath locators can be healed", locator=_describe(locator))
            return None

        expression = locator[1].strip()
        kind = action or self.config.current_action
        try:
            result = self._resolve(expression, kind)
        except Exception as exc:  # noqa: BLE001 - the engine is the error boundary for a heal attempt.
            logger.exception("Unexpected failure while healing xpath=%s action=%s", expression, kind.value)
            result = HealResult(
                decision=HealDecision.MANUAL_REVIEW_API_ERROR,
                reason=f"{type(exc).__name__}: {exc}",
            )
        self._emit(
            "decision",
            result.decision.value,
            old_xpath=expression,
            action=kind.value,
            accepted=result.accepted,
            **result.to_payload(),
        )
        return result

    def _resolve(self, expression: str, action: ActionKind) -> HealResult:
        self.driver.switch_to.default_content()

        if self.config.enable_dom_fallback:
            fallback = self._dom_fallback(expression)
            if fallback is not None:
                return fallback

        descriptor = parse_descriptor(expression)
        intent = descriptor.intent_token
        expected_tag = "input" if action.is_text_entry else descriptor.inferred_tag
        hint = _reinforce_hint(descriptor.best_text_hint, intent)
        selector = selector_for_action(action, expected_tag)
        candidates = self.extractor.extract(self.config.max_candidates, selector)
        self._emit(
            "candidates",
            "candidates extracted",
            selector=selector,
            count=len(candidates),
            expected_tag=expected_tag,
            hint=hint,
            intent=intent,
        )

        heal_request = build_heal_request(descriptor, candidates, text=hint, tag=expected_tag)
        try:
            response = self.client.heal(heal_request)
        except HealServiceError as exc:
            self._emit(
                "service",
                "heal service call failed",
                service=self.client.service_name,
                kind=exc.kind,
                elapsed_ms=exc.elapsed_ms,
            )
            return HealResult(decision=HealDecision.MANUAL_REVIEW_API_ERROR, reason=str(exc))

        if response is None:
            return HealResult(
                decision=HealDecision.MANUAL_REVIEW_API_NULL,
                reason="Heal service returned no suggestion",
            )
        if not response.has_suggestion:
            return HealResult(
                decision=HealDecision.MANUAL_REVIEW_NO_XPATH,
                confidence=response.confidence or 0.0,
                reason="Heal service returned an empty healed_xpath",
            )
        healed_xpath = response.healed_xpath.strip()
        if not response.has_confidence:
            result = HealResult.for_xpath(healed_xpath, 0.0, HealDecision.MANUAL_REVIEW_API_NULL)
            result.reason = "Heal service returned no usable confidence"
            return result

        result = HealResult.for_xpath(healed_xpath, response.confidence, HealDecision.MANUAL_REVIEW)
        self._emit(
            "service",
            "suggestion received",
            service=self.client.service_name,
            healed_xpath=healed_xpath,
            confidence=response.confidence,
            service_decision=response.service_decision,
        )
        return self._judge(result, response, candidates, intent, action)

    def _judge(
        self,
        result: HealResult,
        response: HealResponse,
        candidates: list[Candidate],
        intent: str,
        action: ActionKind,
    ) -> HealResult:
        xpath = result.healed_xpath

        if is_ad_like_xpath(xpath):
            self._emit("ad_filter", "suggestion points at an ad or iframe", healed_xpath=xpath)
            result.decision = HealDecision.REJECT_AD_IFRAME
            result.reason = "Healed xpath matches the ad/iframe denylist"
            return result

        if self.config.enable_intent_gate and intent and not self._healed_matches_intent(xpath, intent):
            self._emit("intent_gate", "healed element lacks intent", intent=intent, healed_xpath=xpath)
            result.decision = HealDecision.REJECT_INTENT_MISMATCH
            result.reason = f"Healed element does not carry the '{intent}' intent"
            return result

        matches = self.verifier.find_all(xpath)
        result.match_count = len(matches)
        result.sanity_passed = len(matches) == 1 and self.verifier.is_allowed_for_action(matches[0], action)
        self._emit(
            "verification",
            "healed xpath verified against the page",
            match_count=result.match_count,
            sanity_passed=result.sanity_passed,
            action=action.value,
        )

        confident = result.confidence >= self.config.confidence_threshold
        service_decision = response.service_decision

        if (
            self.config.allow_verified_override
            and result.match_count == 1
            and service_decision != SERVICE_MANUAL_REVIEW
            and confident
            and result.sanity_passed
        ):
            if intent and not any(mentions_intent(candidate.attribute_blob(), intent) for candidate in candidates):
                result.decision = HealDecision.MANUAL_REVIEW_NO_INTENT_ON_PAGE
                result.reason = f"No element on the page carries the '{intent}' intent"
                return result
            result.decision = HealDecision.AUTO_HEAL_VERIFIED_UNIQUE
            return result

        if service_decision == SERVICE_AUTO_HEAL and confident and result.sanity_passed:
            result.decision = HealDecision.AUTO_HEAL_CONFIDENT
            return result

        result.decision = HealDecision.MANUAL_REVIEW
        result.reason = self._review_reason(result, service_decision)
        return result

    def _dom_fallback(self, expression: str) -> HealResult | None:
        literals = quoted_literals(expression)
        hint = literals[0].strip() if literals else ""
        if not FALLBACK_HINT_MIN_LENGTH <= len(hint) <= FALLBACK_HINT_MAX_LENGTH:
            return None

        literal = xpath_literal(hint)
        for xpath in (f"//*[@placeholder={literal}]", f"//*[normalize-space()={literal}]"):
            if is_ad_like_xpath(xpath):
                continue
            matches = self.verifier.find_all(xpath)
            if len(matches) != 1:
                continue
            element = matches[0]
            if not self.verifier.is_displayed(element) or self.verifier.is_ad_like_element(element):
                continue
            result = HealResult.for_xpath(xpath, 1.0, HealDecision.AUTO_HEAL_DOM_FALLBACK)
            result.match_count = 1
            result.sanity_passed = True
            self._emit("dom_fallback", "unique element found without the service", healed_xpath=xpath)
            return result

        self._emit("dom_fallback", "no unique element for hint", hint=hint)
        return None

    def _healed_matches_intent(self, xpath: str, intent: str) -> bool:
        blob = self.verifier.element_blob(xpath)
        if blob is None:
            return mentions_intent(xpath, intent)
        return mentions_intent(blob, intent)

    def _review_reason(self, result: HealResult, service_decision: str) -> str:
        reasons: list[str] = []
        if result.match_count != 1:
            reasons.append(f"healed xpath matched {result.match_count} elements")
        elif not result.sanity_passed:
            reasons.append("healed element is not usable for the current action")
        if result.confidence < self.config.confidence_threshold:
            reasons.append(f"confidence {result.confidence} below threshold {self.config.confidence_threshold}")
        if service_decision != SERVICE_AUTO_HEAL:
            reasons.append(f"service decision was '{service_decision or 'none'}'")
        return "; ".join(reasons)

    def _emit(self, stage: str, message: str, **data: Any) -> None:
        try:
            self.sink.emit(HealEvent(stage=stage, message=message, data=data))
        except Exception as exc:  # noqa: BLE001 - a broken sink must not change or abort the heal outcome.
            logger.warning("Heal event sink failed stage=%s: %s: %s", stage, type(exc).__name__, exc)


def _reinforce_hint(hint: str, intent: str) -> str:
    if intent and intent not in hint.lower():
        return f"{hint} {intent}".strip()
    return hint


def _describe(locator) -> str:
    if isinstance(locator, tuple) and len(locator) == 2:
        return f"{locator[0]}={locator[1]}"
    return repr(locator)
