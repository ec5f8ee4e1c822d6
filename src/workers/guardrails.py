"""Simple guardrails: clamp worker output based on rules like "max 10 lines" or "max 120 words"."""
import re

_RULE = re.compile(r"max\s+(\d+)\s+(line|word)s?", re.IGNORECASE)


def apply_guardrails(text: str, guardrails: list[str]) -> str:
    """Apply guardrail rules to worker output, in order."""
    if not text:
        return text
    for rule in guardrails or []:
        m = _RULE.search(rule)
        if not m:
            continue
        limit, unit = int(m.group(1)), m.group(2).lower()
        if unit == "line":
            lines = [line for line in text.strip().splitlines()]
            if len(lines) > limit:
                text = "\n".join(lines[:limit])
        else:
            words = text.split()
            if len(words) > limit:
                text = " ".join(words[:limit]) + "..."
    return text
