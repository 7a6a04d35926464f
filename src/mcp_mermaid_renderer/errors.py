"""Error types raised by the diagram pipeline and their MCP error payloads."""

from typing import Any, Dict, Optional


class DiagramError(Exception):
    """Base exception for diagram pipeline errors."""

    def __init__(
        self,
        message: str,
        code: int = -32603,
        data: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data or {}

    def to_json_rpc_error(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        """Convert to JSON-RPC error response."""
        error_response = {
            "jsonrpc": "2.0",
            "error": {
                "code": self.code,
                "message": self.message,
            },
            "id": request_id,
        }

        if self.data:
            error_response["error"]["data"] = self.data

        return error_response


class NormalizationError(DiagramError):
    """Diagram source could not be coerced into a known dialect."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32602, data=data)


class RenderError(DiagramError):
    """The rendering engine rejected the diagram, or it never reached the engine."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32001, data=data)


class ExportPreconditionError(DiagramError):
    """Export requested with no mounted vector document or no source text."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32003, data=data)


class RasterizationError(DiagramError):
    """Drawing surface unavailable or the rasterizer failed."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32010, data=data)


class InternalError(DiagramError):
    """Error for internal server errors."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32603, data=data)


def handle_exception(
    exception: Exception,
    request_id: Optional[str] = None,
    default_message: str = "Internal server error"
) -> Dict[str, Any]:
    """Convert any exception to an MCP error response.

    Args:
        exception: Exception to convert
        request_id: Request ID for the response
        default_message: Default error message

    Returns:
        JSON-RPC error response
    """
    if isinstance(exception, DiagramError):
        return exception.to_json_rpc_error(request_id)

    if isinstance(exception, ValueError):
        error: DiagramError = NormalizationError(str(exception))
    else:
        error = InternalError(default_message, data={"original_error": str(exception)})

    return error.to_json_rpc_error(request_id)
