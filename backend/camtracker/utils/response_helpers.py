# backend/camtracker/utils/response_helpers.py
"""
Response Helper Functions

Consistent ``{"success", "message", "data"}`` envelopes for API responses.
"""

from typing import Any, Dict, List, Optional, Union


class ResponseFormatter:
    """
    Helper class for creating standardized API responses.
    """

    @staticmethod
    def success(
        message: str, data: Optional[Union[Dict[str, Any], List, Any]] = None, **kwargs
    ) -> Dict[str, Any]:
        """
        Create a standardized success response.

        Args:
            message: Success message
            data: Optional data payload (pydantic models are encoded by FastAPI)
            **kwargs: Additional fields to include

        Returns:
            Standardized success response
        """
        response = {"success": True, "message": message}

        if data is not None:
            response["data"] = data

        response.update(kwargs)
        return response

    @staticmethod
    def error(
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """Create a standardized error response."""
        response = {"success": False, "message": message}

        if error_code:
            response["error_code"] = error_code

        if details:
            response["details"] = details

        response.update(kwargs)
        return response
