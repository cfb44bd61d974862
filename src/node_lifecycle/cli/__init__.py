"""
CLI layer for node-lifecycle.

Terminal transport only: argument parsing, coloured output and exit codes.
The commands drive the same components the Lambda handler builds.

Entry point::

    node-lifecycle --help
"""

from node_lifecycle.cli.app import app

__all__ = ["app"]
