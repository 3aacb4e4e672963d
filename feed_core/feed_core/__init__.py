"""pkgfeed core: configuration, pluggable-backend composition and bundled backends."""

__version__ = "0.1.0"
