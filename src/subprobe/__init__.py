"""
Subdomain liveness prober - core modules
"""

__version__ = "1.0.0"

from .scanner.runner import ProbeRunner, run_probe
from .util.types import PageInfo, ProbeConfig, Result, RunSummary

__all__ = [
    'ProbeRunner',
    'run_probe',
    'PageInfo',
    'ProbeConfig',
    'Result',
    'RunSummary',
]
