"""
Structured Validation Error Utilities

Provides standardized error responses for validation failures.
Helps callers distinguish missing fields from malformed ones.

Error Response Format:
{
    "error": "missing_parameter" | "invalid_parameter" | "validation_error",
    "parameters": ["email", "mobile"],
    "message": "email, mobile is required"
}
"""

from fastapi import HTTPException, status
from typing import List, Optional

from services.errors import ValidationError


class ValidationErrorResponse:
    """Structured validation error response builder."""

    @staticmethod
    def missing_parameters(parameters: List[str], message: Optional[str] = None) -> dict:
        """
        Create a missing parameter error response.

        Args:
            parameters: Names of the missing parameters
            message: Optional custom message

        Returns:
            Structured error dict
        """
        return {
            "error": "missing_parameter",
            "parameters": parameters,
            "message": message or f"{', '.join(parameters)} is required"
        }

    @staticmethod
    def invalid_parameters(parameters: List[str], message: Optional[str] = None) -> dict:
        return {
            "error": "invalid_parameter",
            "parameters": parameters,
            "message": message or f"{', '.join(parameters)} is invalid"
        }

    @staticmethod
    def validation_error(message: str) -> dict:
        return {
            "error": "validation_error",
            "parameters": [],
            "message": message
        }


def raise_missing_parameters(parameters: List[str], message: Optional[str] = None):
    """
    Raise HTTPException with structured missing parameter error.

    Raises:
        HTTPException with 400 status and structured error body
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=ValidationErrorResponse.missing_parameters(parameters, message)
    )


def raise_invalid_parameters(parameters: List[str], message: Optional[str] = None):
    """
    Raise HTTPException with structured invalid parameter error.

    Raises:
        HTTPException with 406 status and structured error body
    """
    raise HTTPException(
        status_code=status.HTTP_406_NOT_ACCEPTABLE,
        detail=ValidationErrorResponse.invalid_parameters(parameters, message)
    )


def raise_validation_error(message: str):
    """
    Raise HTTPException with a general validation error.

    Raises:
        HTTPException with 400 status and structured error body
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=ValidationErrorResponse.validation_error(message)
    )


def raise_for_validation_error(error: ValidationError):
    """Translate a directory ValidationError into the matching HTTP error."""
    if error.kind == ValidationError.MISSING:
        raise_missing_parameters(error.fields)
    raise_invalid_parameters(error.fields, str(error))
