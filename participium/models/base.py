"""
Response envelope shared by the routes.

Every successful API response has the shape {"success": true, "data": ...}.
"""

from typing import Any, Dict


def ok(data: Any = None) -> Dict[str, Any]:
    """Build the success envelope returned by every route."""
    return {"success": True, "data": data}
