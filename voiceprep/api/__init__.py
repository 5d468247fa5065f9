"""
API layer for VoicePrep

Contains FastAPI routers for:
- Interview session setup and status
- WebSocket session channel
- Stored session summaries
"""

from voiceprep.api.router import api_router

__all__ = ["api_router"]
