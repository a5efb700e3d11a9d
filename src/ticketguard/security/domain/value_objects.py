"""
Security Policy Value Objects
==============================

The fixed, code-defined set of security policies and their requirements.

Policies are read-only after process start.
"""

import re
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple, Literal

from pydantic import BaseModel, ConfigDict, Field

from ticketguard.config import ActionType, BypassType, PolicySeverity

# ========== Type Aliases for Literals ==========
ValidationRuleTypeStr = Literal["format", "length", "pattern", "cross-reference"]
RequirementTypeStr = Literal["identity", "asset", "contact", "authorization"]


class ValidationRule(BaseModel):
    """
    Format check applied to a submitted verification value.

    ``length`` rules use ``min:N,max:M``; ``pattern`` rules are regular
    expressions. ``format`` and ``cross-reference`` rules need external
    data and always pass here.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: ValidationRuleTypeStr
    rule: str
    error_message: str

    def check(self, value: str) -> Optional[str]:
        """Return the error message if ``value`` fails the rule, else None."""
        if self.type == "length":
            bounds = dict(
                part.split(":", 1) for part in self.rule.split(",") if ":" in part
            )
            minimum = int(bounds.get("min", 0))
            maximum = int(bounds["max"]) if "max" in bounds else None
            if len(value) < minimum or (maximum is not None and len(value) > maximum):
                return self.error_message
        elif self.type == "pattern":
            if re.search(self.rule, value) is None:
                return self.error_message
        return None


class SecurityRequirement(BaseModel):
    """One verification requirement of a policy."""

    model_config = ConfigDict(frozen=True)

    id: str
    field: str
    type: RequirementTypeStr
    mandatory: bool
    alternatives: Tuple[str, ...] = ()
    validation_rules: Tuple[ValidationRule, ...] = ()

    def is_verified(self, verification_status: Mapping[str, bool]) -> bool:
        return bool(verification_status.get(self.field, False))

    def verified_alternatives(self, verification_status: Mapping[str, bool]) -> Tuple[str, ...]:
        return tuple(alt for alt in self.alternatives if verification_status.get(alt, False))

    def is_satisfied(self, verification_status: Mapping[str, bool]) -> bool:
        """Satisfied by the field itself or by any verified alternative."""
        return self.is_verified(verification_status) or bool(
            self.verified_alternatives(verification_status)
        )


class SecurityPolicy(BaseModel):
    """A security policy gating a set of ticket actions."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    requirements: Tuple[SecurityRequirement, ...] = ()
    severity: PolicySeverity
    bypassable: bool = False
    bypass_conditions: FrozenSet[str] = Field(default_factory=frozenset)
    applicable_actions: FrozenSet[ActionType] = Field(default_factory=frozenset)

    def applies_to(self, actions: Iterable[str]) -> bool:
        return any(action in self.applicable_actions for action in actions)


DEFAULT_SECURITY_POLICIES: Tuple[SecurityPolicy, ...] = (
    SecurityPolicy(
        id="customer-identity-verification",
        name="Customer Identity Verification",
        description="Mandatory verification of customer identity before any support actions",
        severity=PolicySeverity.CRITICAL,
        bypassable=False,
        applicable_actions=frozenset(ActionType),
        requirements=(
            SecurityRequirement(
                id="customer-name",
                field="customerName",
                type="identity",
                mandatory=True,
                validation_rules=(
                    ValidationRule(
                        id="name-length",
                        type="length",
                        rule="min:2,max:100",
                        error_message="Customer name must be between 2 and 100 characters",
                    ),
                ),
            ),
            SecurityRequirement(
                id="username-verification",
                field="username",
                type="identity",
                mandatory=True,
                alternatives=("email",),
                validation_rules=(
                    ValidationRule(
                        id="username-format",
                        type="pattern",
                        rule=r"^[a-zA-Z0-9._-]+$",
                        error_message=(
                            "Username must contain only letters, numbers, dots, "
                            "underscores, and hyphens"
                        ),
                    ),
                ),
            ),
        ),
    ),
    SecurityPolicy(
        id="asset-verification",
        name="Asset Verification",
        description="Verification of hardware assets for hardware-related support",
        severity=PolicySeverity.HIGH,
        bypassable=True,
        bypass_conditions=frozenset({BypassType.MANAGER_APPROVAL.value, BypassType.EMERGENCY_OVERRIDE.value}),
        applicable_actions=frozenset({ActionType.RESOLVE, ActionType.MODIFY}),
        requirements=(
            SecurityRequirement(
                id="asset-tag",
                field="assetTag",
                type="asset",
                mandatory=False,
                alternatives=("serial_number", "device_id"),
                validation_rules=(
                    ValidationRule(
                        id="asset-tag-format",
                        type="pattern",
                        rule=r"^[A-Z0-9]{6,12}$",
                        error_message=(
                            "Asset tag must be 6-12 characters, uppercase letters "
                            "and numbers only"
                        ),
                    ),
                ),
            ),
        ),
    ),
    SecurityPolicy(
        id="contact-verification",
        name="Contact Information Verification",
        description="Verification of contact information for account changes",
        severity=PolicySeverity.MEDIUM,
        bypassable=True,
        bypass_conditions=frozenset({BypassType.CALLBACK_VERIFICATION.value, BypassType.MANAGER_APPROVAL.value}),
        applicable_actions=frozenset({ActionType.MODIFY, ActionType.ACCESS}),
        requirements=(
            SecurityRequirement(
                id="contact-info",
                field="contactInfo",
                type="contact",
                mandatory=False,
                alternatives=("phone", "email", "alternate_contact"),
                validation_rules=(
                    ValidationRule(
                        id="phone-format",
                        type="pattern",
                        rule=r"^[+]?[1-9]?[0-9]{7,15}$",
                        error_message="Phone number must be a valid format",
                    ),
                ),
            ),
        ),
    ),
    SecurityPolicy(
        id="department-authorization",
        name="Department Authorization",
        description="Department verification for policy-related requests",
        severity=PolicySeverity.MEDIUM,
        bypassable=True,
        bypass_conditions=frozenset({BypassType.MANAGER_APPROVAL.value, BypassType.HR_APPROVAL.value}),
        applicable_actions=frozenset({ActionType.ESCALATE, ActionType.MODIFY}),
        requirements=(
            SecurityRequirement(
                id="department",
                field="department",
                type="authorization",
                mandatory=False,
                alternatives=("manager_contact", "hr_verification"),
            ),
        ),
    ),
)
