"""
Citadel Client

A client binding for the Citadel groupware server's line-oriented text
protocol, with transcript recording and a terminal transcript viewer.
"""

__version__ = "1.0.0"
__author__ = "Citadel Client Developers"
__description__ = "Client for the Citadel groupware server protocol"
