"""Error taxonomy for contract loading, validation, and conversion."""
from __future__ import annotations


class RiptideError(Exception):
    """Base class for every error raised by riptide."""

    def __init__(self, message: str, *, endpoint: str | None = None, parameter: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.parameter = parameter

    def __str__(self) -> str:
        return self.message


# ============================================================
# Contract validation
# ============================================================

class ContractValidationError(RiptideError):
    """A contract failed one of the validation rules."""


class MetaShapeError(ContractValidationError):
    """The contract document does not match the structural meta-schema."""


class UnsupportedMethodError(ContractValidationError):
    """An endpoint key uses a method outside GET/POST/PUT/PATCH/DELETE."""


class NonObjectRequestError(ContractValidationError):
    """An endpoint declares a Request schema whose type is not `object`."""


class ParameterCollisionError(ContractValidationError):
    """A path parameter is also declared as a Request property."""


class DuplicateEndpointNameError(ContractValidationError):
    """Two endpoints were declared with the same Name."""


class BrokenReferenceError(RiptideError):
    """A `$ref` is malformed or points at a resource that does not exist."""

    def __init__(self, message: str, *, reference: str | None = None) -> None:
        super().__init__(message)
        self.reference = reference


# ============================================================
# OpenAPI conversion
# ============================================================

class OpenAPIConversionError(RiptideError):
    """An OpenAPI document cannot be converted into a contract."""


class MissingOperationIdError(OpenAPIConversionError):
    pass


class NoSuccessResponseError(OpenAPIConversionError):
    pass


class NoJSONResponseError(OpenAPIConversionError):
    pass


class NoRequestBodyError(OpenAPIConversionError):
    pass


class NoRequestBodyContentError(OpenAPIConversionError):
    pass


class NoJSONRequestBodyError(OpenAPIConversionError):
    pass


# ============================================================
# Serving
# ============================================================

class RequestValidationError(RiptideError):
    """Incoming request data does not match the endpoint's Request schema."""


class ImplementationError(RiptideError):
    """An implementation does not line up with the contract it implements."""


class IntrospectionError(RiptideError):
    """A remote service did not answer with a usable introspection document."""
