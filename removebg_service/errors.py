from typing import Optional


class BgRemoverError(Exception):
    """Base error for the background removal workflow"""


class ConfigError(BgRemoverError):
    """Missing or invalid configuration"""


class ValidationError(BgRemoverError):
    """Selected file was rejected (too large, not an image, undecodable)"""


class TransferError(BgRemoverError):
    """Network failure or non-success response from the removal endpoint"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransferInProgressError(BgRemoverError):
    """A transfer was requested while another one is still in flight"""


class ShareUnsupported(BgRemoverError):
    """No native share capability is available"""


class ShareFailure(BgRemoverError):
    """The share capability raised while sharing"""


class UploadSupersededError(BgRemoverError):
    """A newer selection or a reset replaced this upload before it finished loading"""
