"""
Wire and policy models for the admission webhook.

Field names follow the Kubernetes admission.k8s.io/v1 JSON contract through
aliases; Python attributes are snake_case.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_REVIEW_KIND = "AdmissionReview"


class AdmissionMode(str, Enum):
    """Policy selected by the route an admission call arrived on."""

    VALIDATE = "validate"
    MUTATE = "mutate"


class PatchType(str, Enum):
    JSON_PATCH = "JSONPatch"


class GroupVersionKind(BaseModel):
    group: str = ""
    version: str = ""
    kind: str = ""


class GroupVersionResource(BaseModel):
    group: str = ""
    version: str = ""
    resource: str = ""


class AdmissionRequest(BaseModel):
    """The request half of an AdmissionReview."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uid: str = Field(validation_alias=AliasChoices("uid", "UID"))
    kind: Optional[GroupVersionKind] = None
    resource: Optional[GroupVersionResource] = None
    name: Optional[str] = None
    namespace: Optional[str] = None
    operation: Optional[str] = None
    raw_object: Any = Field(default=None, validation_alias=AliasChoices("object", "Object"))
    raw_old_object: Any = Field(
        default=None, validation_alias=AliasChoices("oldObject", "OldObject")
    )
    dry_run: Optional[bool] = Field(default=None, validation_alias=AliasChoices("dryRun", "DryRun"))


class Status(BaseModel):
    """Subset of metav1.Status carried in an admission response."""

    status: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None
    code: Optional[int] = None


class PatchOperation(BaseModel):
    """A single RFC 6902 operation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    op: Literal["add", "remove", "replace", "move", "copy", "test"]
    path: str
    value: Any = None
    from_path: Optional[str] = Field(default=None, alias="from")

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


def _check_patch_pairing(patch: Any, patch_type: Optional[PatchType]) -> None:
    if patch and patch_type is None:
        raise ValueError("patch requires patchType")
    if patch_type is not None and not patch:
        raise ValueError("patchType requires a non-empty patch")


class Decision(BaseModel):
    """Outcome of evaluating one resource against the admission policy."""

    allowed: bool = True
    result: Optional[Status] = None
    patch: Optional[List[PatchOperation]] = None
    patch_type: Optional[PatchType] = None
    # JSON Patch document rendered from ``patch``, produced once by the engine
    patch_document: Optional[bytes] = None

    @model_validator(mode="after")
    def validate_patch_pairing(self):
        _check_patch_pairing(self.patch, self.patch_type)
        if self.patch and self.patch_document is None:
            raise ValueError("patch requires its serialized document")
        return self

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, message: str, reason: str = "Forbidden", code: int = 403) -> "Decision":
        return cls(
            allowed=False,
            result=Status(status="Failure", message=message, reason=reason, code=code),
        )


class AdmissionResponse(BaseModel):
    """The response half of an AdmissionReview.

    ``patch`` holds the base64 text of the serialized JSON Patch, which is how
    a Go ``[]byte`` field travels in JSON.
    """

    model_config = ConfigDict(populate_by_name=True)

    uid: str
    allowed: bool = True
    result: Optional[Status] = Field(default=None, alias="status")
    patch: Optional[str] = None
    patch_type: Optional[PatchType] = Field(default=None, alias="patchType")

    @model_validator(mode="after")
    def validate_patch_pairing(self):
        _check_patch_pairing(self.patch, self.patch_type)
        return self


class AdmissionReview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default=ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = ADMISSION_REVIEW_KIND
    request: Optional[AdmissionRequest] = None
    response: Optional[AdmissionResponse] = None


@dataclass(frozen=True)
class DecodedRequest:
    """An admission request plus the envelope it arrived in.

    ``api_version`` and ``kind`` are None when the caller posted a bare
    request instead of an AdmissionReview.
    """

    request: AdmissionRequest
    api_version: Optional[str] = None
    kind: Optional[str] = None

    @property
    def is_review(self) -> bool:
        return self.kind is not None


class ObjectMeta(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = None
    generate_name: Optional[str] = Field(default=None, alias="generateName")
    namespace: Optional[str] = None
    uid: Optional[str] = None
    labels: Optional[Dict[str, str]] = None
    annotations: Optional[Dict[str, str]] = None


class KubernetesObject(BaseModel):
    """Typed view of any API object: TypeMeta, ObjectMeta, everything else kept as-is."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    api_version: str = Field(alias="apiVersion")
    kind: str
    metadata: Optional[ObjectMeta] = None


@dataclass(frozen=True)
class ResourceView(Mapping):
    """Schema-free mapping of a resource under admission.

    Top-level keys are read-only; callers hand in a private copy so nested
    values never alias the request.
    """

    data: Mapping = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def kind(self) -> Optional[str]:
        kind = self.data.get("kind")
        return kind if isinstance(kind, str) else None

    @property
    def name(self) -> Optional[str]:
        metadata = self.data.get("metadata")
        if isinstance(metadata, dict):
            name = metadata.get("name")
            return name if isinstance(name, str) else None
        return None
