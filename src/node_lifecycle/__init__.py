"""Node lifecycle controller.

Keeps a Scalelite registry in step with a BigBlueButton Auto Scaling group:
a terminating instance is removed from the registry before its lifecycle
hook is completed, and a booting instance registers itself.
"""

__version__ = "0.1.0"
