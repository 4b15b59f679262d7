import copy
import json
from typing import Any, Dict

from pydantic import ValidationError

from admitd.exceptions import ConversionError
from admitd.models import AdmissionRequest, KubernetesObject, ResourceView


def _raw_object(request: AdmissionRequest) -> Any:
    # DELETE requests only carry oldObject
    if request.raw_object is not None:
        return request.raw_object
    if request.raw_old_object is not None:
        return request.raw_old_object
    raise ConversionError(f"Admission request {request.uid} carries no object")


def _decode_raw(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, (bytes, str)):
        try:
            raw = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConversionError(f"Embedded object is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise ConversionError(f"Embedded object must be a JSON object, got {type(raw).__name__}")

    return raw


def _has_type_hint(obj: Dict[str, Any]) -> bool:
    return isinstance(obj.get("apiVersion"), str) and isinstance(obj.get("kind"), str)


def extract_resource(request: AdmissionRequest) -> ResourceView:
    """Turn the request's embedded object into a generic, read-only view.

    Objects carrying apiVersion and kind are first interpreted as a typed
    API object; anything else is taken schema-free. Missing fields are
    never an error here.
    """
    obj = _decode_raw(_raw_object(request))

    if _has_type_hint(obj):
        try:
            typed = KubernetesObject.model_validate(obj)
        except ValidationError as e:
            raise ConversionError(
                f"Embedded object is not a valid {obj['apiVersion']}/{obj['kind']}: {e}"
            ) from e
        obj = typed.model_dump(by_alias=True, exclude_unset=True)

    return ResourceView(data=copy.deepcopy(obj))
