from .loader import ConfigLoader, atlas_config

__all__ = ["ConfigLoader", "atlas_config"]
