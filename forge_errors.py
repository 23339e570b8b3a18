from __future__ import annotations


class ForgeError(Exception):
    """Base class for recoverable Fourier Forge errors."""


class InputError(ForgeError):
    """Raw points are empty or too degenerate to decompose."""


class PipelineBusyError(ForgeError):
    """A load was submitted while another one is still computing."""


class FrameSinkError(ForgeError):
    """The frame sink could not be opened or written to."""


__all__ = [
    "ForgeError",
    "FrameSinkError",
    "InputError",
    "PipelineBusyError",
]
