"""
Touch mode tracking and gesture recognition.

This package classifies simultaneous pointers into a touch mode and
recognizes taps, swipes, long presses, pan/zoom/rotate and the undo hold.
"""

from .touch_state import GesturePhase, TouchMode, TouchStateMachine, TouchTransition
from .gesture_recognizer import GestureRecognizer, GestureType, RecognizedGesture

__all__ = [
    'GesturePhase',
    'TouchMode',
    'TouchStateMachine',
    'TouchTransition',
    'GestureRecognizer',
    'GestureType',
    'RecognizedGesture',
]
