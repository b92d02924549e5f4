"""
Satarknity - Session Module
"""

from satarknity.session.holder import AuthResult, SessionHolder

__all__ = ["AuthResult", "SessionHolder"]
