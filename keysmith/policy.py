#!/usr/bin/env python3
"""
Password Policies
=================
Named policies that raise a GenerationRequest to a compliance baseline.

Usage:
    request = GenerationRequest(length=8)
    details = apply_policy("nist-high", request)
    request.length  # 16
"""

from dataclasses import dataclass, replace

from keysmith.models import GenerationRequest, Mode

MIXED_CLASSES = ("upperletter", "lowerletter", "digit", "symbol2")


# =============================================================================
# Policy Table
# =============================================================================

POLICIES = {
    "windows-ad": {
        "label": "Windows Active Directory",
        "description": "Requires 14+ characters including upper, lower, digits, and symbols.",
        "minimum_length": 14,
        "recommended_entropy_bits": 84.0,
        "avoid_repeat": False,
        "aliases": ["windows", "ad"],
    },
    "pci-dss": {
        "label": "PCI DSS",
        "description": "Minimum 12 characters with mixed character classes per PCI DSS 4.0.",
        "minimum_length": 12,
        "recommended_entropy_bits": 72.0,
        "avoid_repeat": False,
        "aliases": ["pci"],
    },
    "nist-high": {
        "label": "NIST SP 800-63B High",
        "description": "High assurance memorized secret guidance (16+ characters).",
        "minimum_length": 16,
        "recommended_entropy_bits": 96.0,
        "avoid_repeat": True,
        "aliases": ["nist"],
    },
}


@dataclass(frozen=True)
class PolicyDetails:
    name: str
    label: str
    description: str
    minimum_length: int
    recommended_entropy_bits: float


def resolve_policy_name(name: str) -> str:
    """Canonical policy name for a name or alias."""
    key = name.strip().lower()
    if key in POLICIES:
        return key
    for canonical, policy in POLICIES.items():
        if key in policy["aliases"]:
            return canonical
    available = ', '.join(sorted(POLICIES.keys()))
    raise ValueError(f"Unknown policy '{name}'. Available policies: {available}")


def apply_policy(name: str, request: GenerationRequest) -> PolicyDetails:
    """
    Adjust ``request`` in place to satisfy a policy.

    Forces character mode with mixed classes, raises the length to the
    policy minimum and sets avoid-repeat as the policy requires.
    """
    canonical = resolve_policy_name(name)
    policy = POLICIES[canonical]

    request.mode = Mode.CHARACTER
    request.pattern = None
    request.allowed = MIXED_CLASSES
    if request.length is None or request.length < policy["minimum_length"]:
        request.length = policy["minimum_length"]
    request.avoid_repeat = policy["avoid_repeat"]

    return PolicyDetails(
        name=canonical,
        label=policy["label"],
        description=policy["description"],
        minimum_length=policy["minimum_length"],
        recommended_entropy_bits=policy["recommended_entropy_bits"],
    )


def with_policy(name: str, request: GenerationRequest) -> GenerationRequest:
    """Copy of ``request`` with the policy applied."""
    adjusted = replace(request)
    apply_policy(name, adjusted)
    return adjusted


def list_policies() -> dict:
    """List all available policies with descriptions."""
    return {
        name: {
            "label": p["label"],
            "description": p["description"],
            "minimum_length": p["minimum_length"],
        }
        for name, p in POLICIES.items()
    }


__all__ = [
    'POLICIES',
    'PolicyDetails',
    'apply_policy',
    'with_policy',
    'list_policies',
    'resolve_policy_name',
]
