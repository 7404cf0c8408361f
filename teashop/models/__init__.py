"""
Database models for the tea shop backend.
"""
from .system_config import SystemConfig
from .member import Member

__all__ = [
    'SystemConfig',
    'Member',
]
