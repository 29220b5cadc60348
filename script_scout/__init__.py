# script_scout/__init__.py
"""
ScriptScout: capture the JavaScript and WebAssembly a website loads.
Defines package version and exposes the CLI group as ``main_cli``.
"""
__version__ = "0.1.0"

# the submodule keeps the name ``script_scout.cli``
from script_scout.cli import cli as main_cli
