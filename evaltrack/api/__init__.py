"""
API module for the REST API implementation.
"""

from .rest_api import EvalTrackRestAPI

__all__ = [
    "EvalTrackRestAPI",
]
