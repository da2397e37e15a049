"""Cancellation primitives shared by the sync and async executors."""

from .cancel import CancellationToken, CancelScope, checkpoint

__all__ = ["CancellationToken", "CancelScope", "checkpoint"]
