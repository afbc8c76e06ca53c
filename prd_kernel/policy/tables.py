"""
Policy Tables: static allow/block lists for actor names and glossary terms.

Consumed by the Change Applier (rejects blocked proposals) and embedded in
every context pack (biases the assistant's own generation).
"""

from typing import Iterable

from prd_kernel.models.policy import ActorPolicy, TermPolicy


TERM_POLICY_DEFAULT = TermPolicy(
    allowlist=[
        "activation rate",
        "ARR",
        "CAC",
        "churn rate",
        "GDPR",
        "HIPAA",
        "LTV",
        "MRR",
        "net revenue retention",
        "NPS",
        "PII",
        "PHI",
        "SLA",
        "SLI",
        "SLO",
        "SOC 2",
        "time to value",
    ],
    blocklist=[
        "AI", "API", "ascii", "CEP", "CLI", "CPU", "CSS", "CSV", "DB", "DBMS",
        "DNS", "FAQ", "GCP", "GIF", "GPU", "GUI", "HTML", "HTTP", "HTTPS",
        "IoT", "IP", "IPv4", "IPv6", "JPEG", "JSON", "LAN", "MAC", "ML", "OS",
        "PDF", "PNG", "PRD", "SaaS", "SDK", "TL;DR", "UI", "URL", "UX",
    ],
    synonyms={},
)

ACTOR_POLICY_DEFAULT = ActorPolicy(
    allowlist=[
        "Approver",
        "Champion",
        "Compliance Officer",
        "Data Analyst",
        "Decision Maker",
        "Engineering Lead",
        "Executive Sponsor",
        "Finance",
        "IT Admin",
        "Legal Counsel",
        "Operations Manager",
        "Procurement",
        "Product Manager",
        "Security Lead",
        "Support Manager",
        "Technical Buyer",
    ],
    blocklist=[
        "Admin",
        "Buyer",
        "Customer",
        "End user",
        "Stakeholder",
        "System",
        "User",
    ],
)


def normalize_value(value: str) -> str:
    return value.strip().lower()


def is_blocked(value: str, blocklist: Iterable[str]) -> bool:
    """True if `value` matches a blocklist entry, ignoring case and surrounding whitespace."""
    normalized = normalize_value(value)
    return any(normalize_value(entry) == normalized for entry in blocklist)


def is_actor_blocked(name: str, policy: ActorPolicy = ACTOR_POLICY_DEFAULT) -> bool:
    return is_blocked(name, policy.blocklist)


def is_term_blocked(term: str, policy: TermPolicy = TERM_POLICY_DEFAULT) -> bool:
    return is_blocked(term, policy.blocklist)
