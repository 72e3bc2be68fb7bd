from fluxcmd.core.settings.settings import FluxSettings, get_settings, load_settings

__all__ = ["FluxSettings", "get_settings", "load_settings"]
