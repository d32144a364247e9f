"""toolwarden - sandboxed system tools for autonomous agents.

Shell, file and search tools confined to one sandbox root, with a shared
error taxonomy, a registry and an executor that never raises.
"""

__version__ = "0.1.0"
