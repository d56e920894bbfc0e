"""
Utility functions used across the repository core
"""
from .io import record_lock, read_json, write_json
from .logging import blab, BLAB
