"""Tests for deterministic requirement rules."""

from prd_kernel.models.document import Requirement
from prd_kernel.models.rules import RuleStatus
from prd_kernel.rules.requirements import BANNED_WORDS, MAX_SENTENCE_WORDS, validate_requirement_rules


def _make_requirement(title: str = "Approve invoices", description: str = "Approvers sign off on invoices.") -> Requirement:
    return Requirement(id="r1", title=title, description=description)


class TestRequirementRules:
    def test_clean_requirement_passes(self):
        result = validate_requirement_rules(_make_requirement())
        assert result.status == RuleStatus.PASS
        assert result.issue is None

    def test_missing_description(self):
        result = validate_requirement_rules(_make_requirement(description="   "))
        assert result.status == RuleStatus.FAIL
        assert result.issue == "Requirement is incomplete."

    def test_missing_title(self):
        result = validate_requirement_rules(_make_requirement(title=""))
        assert result.issue == "Requirement is incomplete."

    def test_banned_jargon_in_title(self):
        result = validate_requirement_rules(_make_requirement(title="Leverage invoice data"))
        assert result.status == RuleStatus.FAIL
        assert result.issue == 'Contains banned jargon: "leverage"'
        assert "plain English" in result.suggestion

    def test_first_banned_word_reported(self):
        text = "A holistic game changer for invoices."
        result = validate_requirement_rules(_make_requirement(description=text))
        first = next(w for w in BANNED_WORDS if w in text.lower())
        assert result.issue == f'Contains banned jargon: "{first}"'

    def test_long_sentence(self):
        long_sentence = " ".join(["word"] * (MAX_SENTENCE_WORDS + 1)) + "."
        result = validate_requirement_rules(_make_requirement(description=long_sentence))
        assert result.status == RuleStatus.FAIL
        assert result.issue == f"Sentence is too long (> {MAX_SENTENCE_WORDS} words)."

    def test_sentence_at_limit_passes(self):
        sentence = " ".join(["word"] * MAX_SENTENCE_WORDS) + ". Short one!"
        assert validate_requirement_rules(_make_requirement(description=sentence)).status == RuleStatus.PASS

    def test_completeness_checked_before_jargon(self):
        result = validate_requirement_rules(_make_requirement(title="Synergy", description=""))
        assert result.issue == "Requirement is incomplete."
