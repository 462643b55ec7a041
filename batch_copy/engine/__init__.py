"""
Engine package for batch-copy.

The actor owns the pending batch and performs every flush; the channel and
messages are the only way other code talks to it.
"""

from batch_copy.engine.actor import (
    BatchCopyActor,
    FlushPhase,
    FlushStats,
    run_batch_copy_actor,
)
from batch_copy.engine.channel import Channel
from batch_copy.engine.messages import FlushRequest, InsertRow, Message, Shutdown

__all__ = [
    "BatchCopyActor",
    "Channel",
    "FlushPhase",
    "FlushRequest",
    "FlushStats",
    "InsertRow",
    "Message",
    "Shutdown",
    "run_batch_copy_actor",
]
