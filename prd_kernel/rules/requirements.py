"""
Requirement Rules: deterministic lint run before a requirement is sent out.

Checks, in order: completeness, banned jargon, sentence length.
"""

import re

from prd_kernel.models.document import Requirement
from prd_kernel.models.rules import RuleResult, RuleStatus

BANNED_WORDS = [
    "synergy",
    "paradigm shift",
    "leverage",
    "holistic",
    "disrupt",
    "game changer",
    "low hanging fruit",
]

MAX_SENTENCE_WORDS = 40

_SENTENCE_SPLITTER = re.compile(r"[.!?]+")


def validate_requirement_rules(requirement: Requirement) -> RuleResult:
    if not (requirement.title.strip() and requirement.description.strip()):
        return RuleResult(
            status=RuleStatus.FAIL,
            issue="Requirement is incomplete.",
            suggestion="Please provide both a title and a description.",
        )

    content = f"{requirement.title} {requirement.description}".lower()
    for word in BANNED_WORDS:
        if word in content:
            return RuleResult(
                status=RuleStatus.FAIL,
                issue=f'Contains banned jargon: "{word}"',
                suggestion=f'Replace "{word}" with clearer, plain English.',
            )

    for sentence in _SENTENCE_SPLITTER.split(requirement.description):
        if len(sentence.split()) > MAX_SENTENCE_WORDS:
            return RuleResult(
                status=RuleStatus.FAIL,
                issue=f"Sentence is too long (> {MAX_SENTENCE_WORDS} words).",
                suggestion="Break complex sentences into smaller, testable statements.",
            )

    return RuleResult(status=RuleStatus.PASS)
