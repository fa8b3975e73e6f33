"""
Validation hooks run by the parser after each segment and after the
whole message has been built.

A hook returns a ValidationResult. Errors are fatal: the parser stops and
raises ValidationError with the first one. Warnings are collected and
reported, and never change the tree.
"""

from dataclasses import dataclass, field
from typing import List, Mapping

from .builders import BuildContext
from .models import Node, Root, Segment, is_empty_node

MSH_MIN_FIELDS = 12


@dataclass
class ValidationResult:
    is_valid: bool = True
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_findings(cls, warnings: List[str], errors: List[str]) -> "ValidationResult":
        return cls(is_valid=not errors, warnings=warnings, errors=errors)


class ValidationHook:
    """Base class for validation hooks. The default accepts everything."""

    def validate(self, node: Node, context: BuildContext) -> ValidationResult:
        return ValidationResult()


class BasicValidationHook(ValidationHook):
    """
    Structural checks every HL7 v2 message should pass.

    - the first segment must be MSH (error)
    - MSH must carry at least 12 fields (error)
    - a segment whose fields are all empty is suspicious (warning)
    """

    def validate(self, node: Node, context: BuildContext) -> ValidationResult:
        warnings: List[str] = []
        errors: List[str] = []

        if isinstance(node, Root) and node.children:
            first = node.children[0]
            if getattr(first, "name", None) != "MSH":
                errors.append("HL7v2 message must start with MSH segment")

        if isinstance(node, Segment):
            fields = node.fields
            if all(is_empty_node(f) for f in fields):
                warnings.append(f"Segment {node.name} appears to be empty")
            if node.name == "MSH" and len(fields) < MSH_MIN_FIELDS:
                errors.append(f"MSH segment must have at least {MSH_MIN_FIELDS} fields")

        return ValidationResult.from_findings(warnings, errors)


class SegmentRequirementValidationHook(ValidationHook):
    """
    Enforce a minimum field count per segment type.

    Args:
        requirements: Mapping of segment name to minimum number of fields,
            e.g. ``{"PID": 5}``
    """

    def __init__(self, requirements: Mapping[str, int]):
        self.requirements = dict(requirements)

    def validate(self, node: Node, context: BuildContext) -> ValidationResult:
        errors: List[str] = []
        if isinstance(node, Segment) and node.name:
            required = self.requirements.get(node.name)
            found = len(node.fields)
            if required and found < required:
                errors.append(
                    f"Segment {node.name} requires at least {required} fields, "
                    f"but only {found} found"
                )
        return ValidationResult.from_findings([], errors)
