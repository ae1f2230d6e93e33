"""
Screen-Sequence Prototype Generation

Turns an ordered sequence of UI screenshots into a downloadable multi-screen
application codebase using a vision-capable code synthesis model.
"""

__version__ = "0.1.0"
