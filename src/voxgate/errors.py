"""Exception hierarchy for voxgate."""


class VoxgateError(Exception):
    """Base class for all voxgate errors."""


class InvalidArgumentError(VoxgateError, ValueError):
    """Raised for bad construction or configuration parameters."""


class BufferContractError(VoxgateError, RuntimeError):
    """Raised when buffer operations are called out of sequence."""


class CapacityExceededError(BufferContractError):
    """Raised when a write does not fit in the ring buffer's free space."""


class InsufficientSamplesError(BufferContractError):
    """Raised when hopping with fewer than a hop of samples ahead."""


class FrameNotReadyError(BufferContractError):
    """Raised when a frame is requested before enough samples arrived."""
