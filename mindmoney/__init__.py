"""
MindMoney - Source Package

Backend for a personal-finance tracker: spending-habit quiz,
daily spending journal, savings goals and an AI advisor chat.

DESIGN PRINCIPLES:
1. Every request is verified, routed and answered in one pass
2. Users only ever see their own data
3. Generated text is advice, never stored numbers
4. Failures are reported in one uniform envelope
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "MindMoney Team"
