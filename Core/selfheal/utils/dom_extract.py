from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from selenium.common.exceptions import WebDriverException

from selfheal.core.metadata import ActionKind
from selfheal.service.dto import Candidate

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_SELECTOR = (
    'input,textarea,button,a[href],[role="button"],[role="textbox"],'
    '[contenteditable="true"],[aria-label],[data-testid],[data-test],[data-qa]'
)
TEXT_ENTRY_SELECTOR = 'input,textarea,[role="textbox"],[contenteditable="true"]'
CLICK_SELECTOR = 'button,a[href],[role="button"],input[type="submit"],input[type="button"]'
GENERIC_SELECTOR = "input,textarea,button,a[href],[role],[aria-label],[data-testid],[data-test],[data-qa]"

COLLECT_CANDIDATES_SCRIPT = r"""
const safeStr = (value) => (value == null ? "" : String(value)).trim();
const attr = (node, name) => safeStr(node.getAttribute(name));
const testId = (node) => attr(node, "data-testid") || attr(node, "data-test") || attr(node, "data-qa");

const isVisible = (node) => {
  const style = window.getComputedStyle(node);
  if (!style) return false;
  if (style.display === "none" || style.visibility === "hidden") return false;
  if (parseFloat(style.opacity || "1") === 0) return false;
  const rect = node.getBoundingClientRect();
  return !!rect && rect.width >= 2 && rect.height >= 2;
};

const labelText = (node) => {
  try {
    const wrapping = node.closest ? node.closest("label") : null;
    if (wrapping) return safeStr(wrapping.innerText);
    if (!node.id) return "";
    const explicit = document.querySelector(`label[for="${CSS.escape(node.id)}"]`);
    return explicit ? safeStr(explicit.innerText) : "";
  } catch (err) {
    return "";
  }
};

const xpathLiteral = (raw) => {
  const value = safeStr(raw);
  if (value.indexOf("'") === -1) return `'${value}'`;
  if (value.indexOf('"') === -1) return `"${value}"`;
  return "concat(" + value.split("'").map((part) => `'${part}'`).join(`, "'", `) + ")";
};

const stableXPath = (node) => {
  const tag = node.tagName.toLowerCase();
  if (safeStr(node.id)) return `//*[@id=${xpathLiteral(node.id)}]`;
  const tid = testId(node);
  if (tid) {
    const lit = xpathLiteral(tid);
    return `//*[(@data-testid=${lit} or @data-test=${lit} or @data-qa=${lit})]`;
  }
  const name = attr(node, "name");
  if (name) return `//${tag}[@name=${xpathLiteral(name)}]`;
  const placeholder = attr(node, "placeholder");
  if (placeholder) return `//${tag}[@placeholder=${xpathLiteral(placeholder)}]`;
  const parts = [];
  for (let el = node; el && el.nodeType === 1; el = el.parentNode) {
    let index = 1;
    for (let sib = el.previousSibling; sib; sib = sib.previousSibling) {
      if (sib.nodeType === 1 && sib.tagName === el.tagName) index += 1;
    }
    parts.unshift(`${el.tagName.toLowerCase()}[${index}]`);
  }
  return "/" + parts.join("/");
};

const selector = arguments[0] || arguments[2];
const cap = arguments[1] || 200;
const nodes = Array.from(document.querySelectorAll(selector)).filter(isVisible).slice(0, cap);
return nodes.map((node, index) => ({
  xpath: stableXPath(node),
  text: [
    safeStr(node.innerText || node.value || ""),
    labelText(node),
    attr(node, "placeholder"),
    attr(node, "aria-label"),
    attr(node, "name"),
    safeStr(node.id),
    testId(node),
  ].filter((part) => part).join(" "),
  tag: node.tagName.toLowerCase(),
  idx: index,
  ariaLabel: attr(node, "aria-label"),
  id: safeStr(node.id),
  name: attr(node, "name"),
  className: typeof node.className === "string" ? safeStr(node.className) : attr(node, "class"),
  placeholder: attr(node, "placeholder"),
  type: attr(node, "type"),
  value: safeStr(node.value),
  dataTestId: testId(node),
}));
"""


def selector_for_action(action: ActionKind, expected_tag: str = "") -> str:
    if action.is_text_entry:
        return TEXT_ENTRY_SELECTOR
    if action.is_click:
        return CLICK_SELECTOR
    return expected_tag.strip() or GENERIC_SELECTOR


class CandidateExtractor:
    """Captures visible, interactive elements of the top-level document."""

    def __init__(self, driver) -> None:
        self.driver = driver

    def extract(self, max_candidates: int, css_selector: str = "") -> list[Candidate]:
        try:
            raw_candidates = self.driver.execute_script(
                COLLECT_CANDIDATES_SCRIPT,
                css_selector or "",
                max_candidates,
                DEFAULT_CANDIDATE_SELECTOR,
            )
        except WebDriverException as exc:
            logger.warning("Candidate extraction failed selector=%r: %s", css_selector, exc.msg or exc)
            return []
        return self._to_candidates(raw_candidates or [], max_candidates)

    @staticmethod
    def _to_candidates(raw_candidates: Any, max_candidates: int) -> list[Candidate]:
        if not isinstance(raw_candidates, list):
            logger.warning("Candidate extraction returned %s, expected a list", type(raw_candidates).__name__)
            return []
        candidates: list[Candidate] = []
        for item in raw_candidates:
            if not isinstance(item, dict):
                continue
            xpath = item.get("xpath")
            if not isinstance(xpath, str) or not xpath.strip():
                continue
            try:
                candidates.append(Candidate.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed candidate xpath=%s: %s", xpath, exc.error_count())
                continue
            if len(candidates) >= max_candidates:
                break
        return candidates
