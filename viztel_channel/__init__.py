"""Producer-сторона viztel: канал сигналів, геометрія, аудіо, збирання кадрів.

Потік: producers → SignalChannel/GeometrySampler → FrameAssembler →
FrameOutbox → сховище кадрів.
"""

from __future__ import annotations

from .assembler import FrameAssembler
from .audio import AUDIO_ENTITY_ID, AudioEnergySampler, block_energy
from .channel import BufferState, Harvest, SignalBuffer, SignalChannel
from .geometry import ElementPhysicalState, GeometrySampler, compute_visual_weight
from .outbox import DEFAULT_OUTBOX_CAPACITY, FrameOutbox, FrameSink

__all__ = [
    "AUDIO_ENTITY_ID",
    "AudioEnergySampler",
    "BufferState",
    "DEFAULT_OUTBOX_CAPACITY",
    "ElementPhysicalState",
    "FrameAssembler",
    "FrameOutbox",
    "FrameSink",
    "GeometrySampler",
    "Harvest",
    "SignalBuffer",
    "SignalChannel",
    "block_energy",
    "compute_visual_weight",
]
