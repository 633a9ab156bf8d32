"""
Database models for mangatrack
"""

from .base import Base
from .preference import TrackerPreference
from .track import Track

__all__ = ['Base', 'TrackerPreference', 'Track']
