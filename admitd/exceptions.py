class AdmissionException(Exception):
    """Base class for admission processing failures."""


class DecodeError(AdmissionException):
    """Inbound body is not a valid admission request."""


class ConversionError(AdmissionException):
    """Embedded resource object cannot be interpreted as a JSON object."""


class PolicyEvaluationError(AdmissionException):
    """Policy-relevant field is missing or malformed."""


class PatchConstructionError(AdmissionException):
    """Mutation patch could not be produced."""


class EncodeError(AdmissionException):
    """Admission response could not be serialized."""


class DeadlineExceeded(AdmissionException):
    """Caller's deadline passed before a response was produced."""
