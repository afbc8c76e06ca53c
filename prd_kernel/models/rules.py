"""Rule check result for deterministic requirement linting."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class RuleStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"


class RuleResult(BaseModel):
    status: RuleStatus
    issue: Optional[str] = None
    suggestion: Optional[str] = None
