# gridsuite/dsa/core/errors.py
"""Business errors raised by the analysis service.

Each error carries a stable ``code`` and the HTTP status the API layer maps it
to. Errors raised before a result row exists fail the caller's request; errors
raised inside a running job end the job as FAILED.
"""
from __future__ import annotations

from typing import Optional


class DsaError(Exception):
    """Base class for dynamic security analysis business errors."""

    code: str = "DYNAMIC_SECURITY_ANALYSIS_ERROR"
    status_code: int = 500

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ProviderNotFoundError(DsaError):
    code = "PROVIDER_NOT_FOUND"
    status_code = 404


class ContingencyListEmptyError(DsaError):
    code = "CONTINGENCY_LIST_EMPTY"
    status_code = 400


class ParametersNotFoundError(DsaError):
    code = "PARAMETERS_NOT_FOUND"
    status_code = 404


class ResultNotFoundError(DsaError):
    code = "RESULT_NOT_FOUND"
    status_code = 404


class ContingenciesNotFoundError(DsaError):
    code = "CONTINGENCIES_NOT_FOUND"
    status_code = 404


class UpstreamResultNotFoundError(DsaError):
    """The prior-stage simulation has no artifact for the requested result."""

    code = "DYNAMIC_SIMULATION_RESULT_NOT_FOUND"
    status_code = 404


class UpstreamResultFetchError(DsaError):
    """A prior-stage artifact could not be fetched (non-2xx, non-404)."""

    code = "DYNAMIC_SIMULATION_RESULT_GET_ERROR"
    status_code = 502


class DynamicModelDecodeError(DsaError):
    code = "DYNAMIC_MODEL_ERROR"


class DynamicSimulationParametersDecodeError(DsaError):
    code = "DYNAMIC_SIMULATION_PARAMETERS_ERROR"


class WorkingDirectoryError(DsaError):
    code = "DUMP_FILE_ERROR"
