# SPDX-License-Identifier: MIT
"""Build file generators for bcons."""

from bcons.generators.compile_commands import CompileCommandsGenerator
from bcons.generators.generator import BaseGenerator, Generator
from bcons.generators.mermaid import MermaidGenerator
from bcons.generators.ninja import NinjaGenerator

__all__ = [
    "BaseGenerator",
    "CompileCommandsGenerator",
    "Generator",
    "MermaidGenerator",
    "NinjaGenerator",
]
