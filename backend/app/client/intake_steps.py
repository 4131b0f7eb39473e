"""
Ordered intake steps and the minimum answers needed to move past each one.
"""
from typing import Any, Dict, List, Optional

INTAKE_STEPS = ("victim", "applicant", "crime", "losses", "summary")

_REQUIRED_FIELDS = {
    "victim": ("firstName", "lastName", "dateOfBirth", "streetAddress", "city", "zip"),
    "crime": ("dateOfCrime", "crimeAddress", "crimeCity", "reportingAgency"),
}

# Copied from victim to applicant when they are the same person
_SHARED_CONTACT_FIELDS = (
    "firstName", "lastName", "dateOfBirth", "streetAddress", "apt", "city",
    "state", "zip", "email", "cellPhone", "alternatePhone", "workPhone",
)


def step_index(step: str) -> int:
    try:
        return INTAKE_STEPS.index(step)
    except ValueError:
        raise ValueError(f"Unknown intake step: {step}")


def next_step(step: str) -> Optional[str]:
    idx = step_index(step)
    return INTAKE_STEPS[idx + 1] if idx + 1 < len(INTAKE_STEPS) else None


def missing_fields(step: str, application: Dict[str, Any]) -> List[str]:
    """Fields that block leaving ``step``; empty means the user may continue."""
    if step == "losses":
        losses = application.get("losses") or {}
        return [] if any(bool(v) for v in losses.values()) else ["losses"]

    section = application.get(step) or {}
    missing = []
    for field in _REQUIRED_FIELDS.get(step, ()):
        value = section.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(f"{step}.{field}")
    return missing


def applicant_from_victim(application: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """New applicant section when the applicant is the victim, else None."""
    applicant = dict(application.get("applicant") or {})
    if not applicant.get("isSameAsVictim"):
        return None
    victim = application.get("victim") or {}
    for field in _SHARED_CONTACT_FIELDS:
        if field in victim:
            applicant[field] = victim[field]
    return applicant
