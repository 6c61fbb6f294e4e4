"""Helper modules for the print relay console."""

__all__ = [
    "fallback_policy",
    "install_script",
    "install_simulator",
    "script_escaping",
]
