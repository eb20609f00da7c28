"""
Role matcher - maps a contact's free-text title onto an outreach profile.

Matching runs in strict priority order and the first hit wins:
    1. exact (case-insensitive) title == profile role
    2. a profile role contained in the title as whole words, longest roles first
    3. canonical alias patterns for C-level / VP titles
"""
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional, List, Dict

from outreach_pipeline.models.profile import Profile

logger = logging.getLogger(__name__)

# Word-boundary only, so "Coordinator" never reads as "COO".
ALIAS_PATTERNS = [
    (re.compile(r"\bceo\b", re.IGNORECASE), "CEO"),
    (re.compile(r"\bcoo\b", re.IGNORECASE), "COO"),
    (re.compile(r"\bcfo\b", re.IGNORECASE), "CFO"),
    (re.compile(r"\bcto\b", re.IGNORECASE), "CTO"),
    (re.compile(r"\bcmo\b", re.IGNORECASE), "CMO"),
    (re.compile(r"\bcro\b", re.IGNORECASE), "CRO"),
    (re.compile(r"\bcpo\b", re.IGNORECASE), "CPO"),
    (re.compile(r"\bchro\b", re.IGNORECASE), "CHRO"),
    (re.compile(r"\bchief executive officer\b", re.IGNORECASE), "CEO"),
    (re.compile(r"\bchief operating officer\b", re.IGNORECASE), "COO"),
    (re.compile(r"\bchief financial officer\b", re.IGNORECASE), "CFO"),
    (re.compile(r"\bchief technology officer\b", re.IGNORECASE), "CTO"),
    (re.compile(r"\bvice president\b", re.IGNORECASE), "VP"),
    (re.compile(r"\bvp\b", re.IGNORECASE), "VP"),
    (re.compile(r"\bsvp\b", re.IGNORECASE), "SVP"),
    (re.compile(r"\bevp\b", re.IGNORECASE), "EVP"),
    (re.compile(r"\bmanaging director\b", re.IGNORECASE), "Managing Director"),
    (re.compile(r"\bgeneral manager\b", re.IGNORECASE), "General Manager"),
]

OVERRIDE_FALLBACK_ROLE = "Custom"


@dataclass
class ProfileMatch:
    """Result of matching a title (or honoring an override)."""
    profile: Profile
    matched_role: str
    is_override: bool = False


def _roles(profile: Profile) -> List[str]:
    # JSONB lists can hold nulls or blanks; they never match anything
    return [role for role in (profile.roles or []) if isinstance(role, str) and role.strip()]


def _contains_role(title: str, role: str) -> bool:
    # Whole words only: "Coordinator" does not contain "COO".
    pattern = r"(?<!\w)" + re.escape(role.strip()) + r"(?!\w)"
    return re.search(pattern, title, re.IGNORECASE) is not None


def match_profile(title: Optional[str], profiles: List[Profile]) -> Optional[ProfileMatch]:
    """Find the best-fit profile for a title, or None."""
    if not title or not title.strip():
        return None

    title_lower = title.lower()

    # Exact match
    for profile in profiles:
        for role in _roles(profile):
            if role.lower() == title_lower:
                return ProfileMatch(profile=profile, matched_role=role)

    # Substring containment across all profiles, most specific role first.
    # sorted() is stable, so equal lengths keep profile order then role order.
    candidates = [
        (profile, role)
        for profile in profiles
        for role in _roles(profile)
    ]
    for profile, role in sorted(candidates, key=lambda pair: len(pair[1]), reverse=True):
        if _contains_role(title, role):
            return ProfileMatch(profile=profile, matched_role=role)

    # Canonical alias fallback
    for pattern, canonical in ALIAS_PATTERNS:
        if not pattern.search(title):
            continue
        for profile in profiles:
            if any(role.lower() == canonical.lower() for role in _roles(profile)):
                return ProfileMatch(profile=profile, matched_role=canonical)

    return None


def resolve_profile(
    title: Optional[str],
    profiles: List[Profile],
    override_profile_id: Optional[uuid.UUID] = None
) -> Optional[ProfileMatch]:
    """
    Honor a manual profile override when it still points at an existing
    profile, otherwise fall back to matching the title.
    """
    if override_profile_id:
        for profile in profiles:
            if str(profile.id) == str(override_profile_id):
                roles = _roles(profile)
                matched_role = roles[0] if roles else OVERRIDE_FALLBACK_ROLE
                return ProfileMatch(profile=profile, matched_role=matched_role, is_override=True)
        logger.warning(f"Profile override {override_profile_id} no longer exists, auto-matching instead")

    return match_profile(title, profiles)


def override_for(overrides: Optional[Dict], contact_id) -> Optional[uuid.UUID]:
    """Look up a contact's override in a caller-owned {contact_id: profile_id} map."""
    if not overrides:
        return None
    return overrides.get(contact_id) or overrides.get(str(contact_id))
