# src/stepflow/loaders/__init__.py
"""
Loaders declarativos do StepFlow (fluxos e grupos em YAML/JSON).
"""

from .definitions import build_step, build_steps, import_reference, load_flow, load_groups

__all__ = ["build_step", "build_steps", "import_reference", "load_flow", "load_groups"]
