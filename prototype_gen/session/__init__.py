"""
Session state for the prototype pipeline: the ordered screen sequence and
the session object that exposes the user-facing actions.
"""

from prototype_gen.session.controller import PrototypeSession
from prototype_gen.session.sequence import ImageSequence

__all__ = [
    "ImageSequence",
    "PrototypeSession",
]
