"""
Admission policy.

Validation fails closed: a resource whose policy field cannot be read is
denied with a reason. Mutation fails open: a patch that cannot be produced
lets the write through unchanged, with a reason attached.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

import jsonpatch
from loguru import logger as default_logger

from admitd.exceptions import PatchConstructionError, PolicyEvaluationError
from admitd.models import (
    AdmissionMode,
    Decision,
    PatchOperation,
    PatchType,
    ResourceView,
    Status,
)


SPEC_FIELD = "spec"
FAIL_VALIDATION_FIELD = "fail_validation"
MUTATED_FIELD = "mutated_default"
MUTATED_VALUE = "default_value"

PATCH_FAILURE_MESSAGE = "Could not translate the patch"


class LookupStatus(str, Enum):
    PRESENT = "present"
    MISSING = "missing"
    WRONG_TYPE = "wrong_type"


@dataclass(frozen=True)
class FieldLookup:
    status: LookupStatus
    value: Optional[bool] = None
    actual_type: Optional[str] = None


def lookup_bool(section: Mapping[str, Any], key: str) -> FieldLookup:
    if key not in section:
        return FieldLookup(LookupStatus.MISSING)
    value = section[key]
    if not isinstance(value, bool):
        return FieldLookup(LookupStatus.WRONG_TYPE, actual_type=type(value).__name__)
    return FieldLookup(LookupStatus.PRESENT, value=value)


def serialize_patch(operations: List[PatchOperation]) -> bytes:
    """Render operations as a JSON Patch document."""
    try:
        patch = jsonpatch.JsonPatch([operation.as_dict() for operation in operations])
        return patch.to_string().encode("utf-8")
    except (TypeError, ValueError, jsonpatch.JsonPatchException) as e:
        raise PatchConstructionError(f"Unable to serialize patch: {e}") from e


class DecisionEngine:
    """Decides allow/deny and builds mutation patches for a single resource."""

    def __init__(self, logger=None):
        self.logger = logger or default_logger.bind(component="decision-engine")

    def decide(self, view: ResourceView, mode: AdmissionMode) -> Decision:
        if mode == AdmissionMode.MUTATE:
            return self._mutate(view)
        return self._validate(view)

    def _validate(self, view: ResourceView) -> Decision:
        spec = view.get(SPEC_FIELD)
        if spec is None:
            return Decision.allow()

        try:
            fail_validation = self._read_fail_validation(spec)
        except PolicyEvaluationError as e:
            self.logger.warning(f"Denying {view.kind or 'resource'} {view.name or ''}: {e}")
            return Decision.deny(str(e), reason="Invalid", code=400)

        if fail_validation:
            return Decision.deny(
                f"{SPEC_FIELD}.{FAIL_VALIDATION_FIELD} is set, rejecting resource"
            )
        return Decision.allow()

    def _read_fail_validation(self, spec: Any) -> bool:
        if not isinstance(spec, Mapping):
            raise PolicyEvaluationError(
                f"{SPEC_FIELD} must be an object, got {type(spec).__name__}"
            )

        lookup = lookup_bool(spec, FAIL_VALIDATION_FIELD)
        if lookup.status == LookupStatus.MISSING:
            raise PolicyEvaluationError(f"{SPEC_FIELD}.{FAIL_VALIDATION_FIELD} is missing")
        if lookup.status == LookupStatus.WRONG_TYPE:
            raise PolicyEvaluationError(
                f"{SPEC_FIELD}.{FAIL_VALIDATION_FIELD} must be a boolean, got {lookup.actual_type}"
            )
        return lookup.value

    def _mutate(self, view: ResourceView) -> Decision:
        spec = view.get(SPEC_FIELD)
        if spec is None:
            return Decision.allow()

        try:
            operations, document = self._build_patch(spec)
        except PatchConstructionError as e:
            self.logger.error(f"Patch construction failed, admitting unchanged: {e}")
            return Decision(
                allowed=True,
                result=Status(status="Failure", message=f"{PATCH_FAILURE_MESSAGE}: {e}"),
            )

        return Decision(
            allowed=True,
            patch=operations,
            patch_type=PatchType.JSON_PATCH,
            patch_document=document,
        )

    def _build_patch(self, spec: Any) -> Tuple[List[PatchOperation], bytes]:
        if not isinstance(spec, Mapping):
            raise PatchConstructionError(
                f"{SPEC_FIELD} must be an object to add {MUTATED_FIELD}, got {type(spec).__name__}"
            )

        operations = [
            PatchOperation(
                op="add",
                path=f"/{SPEC_FIELD}/{MUTATED_FIELD}",
                value=MUTATED_VALUE,
            )
        ]
        return operations, serialize_patch(operations)
