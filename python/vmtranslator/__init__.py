from .codegen import CodeWriter, GeneratorState
from .emit_asm import AsmProgram
from .lowering import LoweringPolicy, Strategy
from .parser import CommandReader, parse_line, parse_text
from .translate import Problem, translate_sources

__version__ = "0.1.0"
