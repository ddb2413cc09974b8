"""
Client profile and process settings configuration.
"""

from .profile_loader import ProfileConfigLoader
from .settings import PipelineSettings

__all__ = [
    "ProfileConfigLoader",
    "PipelineSettings",
]
