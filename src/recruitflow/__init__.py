"""Recruitment workflow core: job approval, applications and timed assessments."""

__version__ = "0.1.0"
