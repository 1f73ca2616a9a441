"""
Error responses for the GreenMirror API. Every failure is returned in the
same JSON shape, and domain exceptions map to fixed codes and HTTP statuses.
"""

import logging
from flask import jsonify
from typing import Dict, Any, Optional

from exceptions import (
    AnalysisContractError,
    AnalysisError,
    NoActiveSessionError,
    ProfileStoreError,
    SessionBusyError,
    SessionNotReadyError,
    UnknownActorError,
    VisualizationError,
)

# Standard error codes for consistent API responses
ERROR_CODES = {
    # Identification errors
    "TOKEN_MISSING": "Actor token is missing",
    "TOKEN_INVALID": "Actor token is invalid or expired",
    "UNKNOWN_ACTOR": "No profile exists for this actor",

    # Validation errors
    "INVALID_REQUEST": "Invalid request body or parameters",
    "VALIDATION_ERROR": "Request validation failed",
    "PAYLOAD_TOO_LARGE": "Uploaded media is too large",

    # Session errors
    "SESSION_BUSY": "An analysis is already in progress",
    "NO_ACTIVE_SESSION": "There is no analysis to act on",
    "SESSION_NOT_READY": "The analysis has not finished yet",

    # Remote collaborator errors
    "ANALYSIS_FAILED": "Failed to analyze media. Please try again.",
    "ANALYSIS_INVALID": "The analysis service returned an unusable result. Please try again.",
    "VISUALIZATION_FAILED": "Failed to generate the visualization",

    # System errors
    "NOT_FOUND": "Resource not found",
    "SERVER_ERROR": "Internal server error",
    "STORAGE_ERROR": "Error accessing profile storage",
}

# Domain exception -> (error code, HTTP status). Order matters: subclasses first.
EXCEPTION_MAP = [
    (AnalysisContractError, "ANALYSIS_INVALID", 502),
    (AnalysisError, "ANALYSIS_FAILED", 502),
    (VisualizationError, "VISUALIZATION_FAILED", 502),
    (SessionBusyError, "SESSION_BUSY", 409),
    (NoActiveSessionError, "NO_ACTIVE_SESSION", 404),
    (SessionNotReadyError, "SESSION_NOT_READY", 409),
    (UnknownActorError, "UNKNOWN_ACTOR", 401),
    (ProfileStoreError, "STORAGE_ERROR", 503),
]


def create_error_response(error_code: str, message: Optional[str] = None,
                          details: Optional[Any] = None, status_code: int = 500) -> tuple:
    """
    Builds the JSON body every endpoint returns on failure:
    {"error_code": ..., "message": ..., "details"?: ...}.
    Unknown codes are reported as SERVER_ERROR.
    """
    if error_code not in ERROR_CODES:
        logging.warning(f"Unknown error code used: {error_code}")
        error_code = "SERVER_ERROR"

    body: Dict[str, Any] = {"error_code": error_code, "message": message or ERROR_CODES[error_code]}
    if details:
        body["details"] = details

    logging.error(f"API Error [{error_code}]: {body['message']} - Status: {status_code}")
    return jsonify(body), status_code


def domain_error_response(e: Exception) -> Optional[tuple]:
    """Maps a domain exception to its standard response, or None if it is not one."""
    for exc_type, error_code, status_code in EXCEPTION_MAP:
        if isinstance(e, exc_type):
            # Messages of remote failures may carry provider internals; keep the standard text.
            message = None if isinstance(e, (AnalysisError, VisualizationError, ProfileStoreError)) else str(e)
            details = e.details if isinstance(e, AnalysisContractError) else None
            return create_error_response(error_code, message, details, status_code=status_code)
    return None


def handle_exception(e: Exception, context: str = "API endpoint") -> tuple:
    """Domain errors get their mapped code; anything else is logged with its traceback and reported as a 500."""
    mapped = domain_error_response(e)
    if mapped is not None:
        return mapped

    logging.error(f"Unexpected error in {context}: {type(e).__name__} - {e}", exc_info=True)
    return create_error_response("SERVER_ERROR", "An unexpected error occurred",
                                 details={"error_type": type(e).__name__}, status_code=500)


# --- Shortcuts ---
def not_found_error(message: Optional[str] = None) -> tuple:
    return create_error_response("NOT_FOUND", message, status_code=404)


def validation_error(message: Optional[str] = None, details: Optional[Any] = None) -> tuple:
    return create_error_response("VALIDATION_ERROR", message, details, status_code=400)


def bad_request_error(message: Optional[str] = None) -> tuple:
    return create_error_response("INVALID_REQUEST", message, status_code=400)
