"""pylogsift: search server logs and archives for what players said.

This package provides the `logsift` command-line tool and the configuration
layer that prepares and validates the options a scan runs with.
"""

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = ["__version__", "__license__"]
