"""Fresher: fresh-context agent loop for specification-driven development."""

from fresher.constants import VERSION

__version__ = VERSION
