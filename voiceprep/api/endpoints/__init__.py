"""
API endpoint modules for VoicePrep
"""

from voiceprep.api.endpoints import interview

__all__ = ["interview"]
