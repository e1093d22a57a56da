"""Random-access storage layers and container layouts for 3DS save data."""

__version__ = "0.1.0"
__all__ = [
    "errors",
    "storage",
    "dual_file",
    "dpfs_level",
    "aes_ctr_file",
    "layout",
    "containers",
]