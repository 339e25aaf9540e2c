"""Error kinds raised by the encoding core and its engine adapters."""


class VbeError(Exception):
    """Base class for all VBE errors."""

    def __init__(self, message: str = "", detail: str = ""):
        super().__init__(message)
        self.message = message
        self.detail = detail


class DiscoveryError(VbeError):
    """A single file (or dropped path) could not be described."""


class NoSelectionError(VbeError):
    """A batch start was requested with nothing selected."""


class BatchInProgressError(VbeError):
    """A batch start was requested while another batch call is in flight."""


class BatchEncodeError(VbeError):
    """The batch-encode call itself failed."""


class InvalidOptionsError(VbeError, ValueError):
    """Encoding options rejected before any file is touched."""


class EngineUnavailableError(VbeError):
    """The external encoder binary is missing."""


class EncodeFailedError(VbeError):
    """One file of a batch failed to encode; aborts the batch."""
