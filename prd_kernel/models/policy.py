"""Policy tables: allow/block lists bounding what the assistant may introduce."""

from typing import Dict, List

from pydantic import BaseModel


class ActorPolicy(BaseModel):
    allowlist: List[str] = []               # Preferred concrete role names
    blocklist: List[str] = []               # Generic names never accepted as actors


class TermPolicy(BaseModel):
    allowlist: List[str] = []               # Terms worth defining
    blocklist: List[str] = []               # Acronyms / generic headers never defined
    synonyms: Dict[str, List[str]] = {}
