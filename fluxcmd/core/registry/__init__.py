from fluxcmd.core.registry.registry import BaseRegistry

__all__ = ["BaseRegistry"]
