"""
Audio/video workstation doctor: find what is breaking PipeWire, GPU or streaming setups and how to fix it.
"""

__all__ = ["aggregator", "diagnostics", "formatting", "models", "remediation", "system_state", "cli"]
__version__ = "0.1.0"
