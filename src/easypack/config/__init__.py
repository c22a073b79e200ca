from .config import EasypackConfig

__all__ = ["EasypackConfig"]
