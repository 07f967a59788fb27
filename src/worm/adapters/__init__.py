"""
Language adapters for WORM sessions.

Facades:
- NativeFacade (``session.js``): in-process callables
- PythonFacade (``session.python``): external interpreter
- GoFacade (``session.go``): ``go run``
- CppFacade (``session.cpp``): ctypes libraries and the C++ compiler

Factory:
- create_adapters(): one adapter per language from a WormConfig
"""

from .base import (
    AdapterResult,
    LanguageAdapter,
    LanguageFacade,
    ResultStatus,
    format_arg,
    format_call,
)
from .cpp import CppAdapter, CppFacade, CppFunction, CppLibrary, CppMath
from .factory import ADAPTER_TYPES, create_adapters, get_toolchain_info
from .go import GoAdapter, GoFacade, GoFunction, GoModule, GoStrings
from .native import NativeAdapter, NativeArray, NativeFacade, NativeFunction, NativeObject, NativeString
from .process import ProcessOutput, run_process, toolchain_available
from .python import PythonAdapter, PythonArray, PythonFacade, PythonFunction, PythonModule

__all__ = [
    # Interface
    "AdapterResult",
    "LanguageAdapter",
    "LanguageFacade",
    "ResultStatus",
    "format_arg",
    "format_call",
    # Factory
    "ADAPTER_TYPES",
    "create_adapters",
    "get_toolchain_info",
    # Subprocess
    "ProcessOutput",
    "run_process",
    "toolchain_available",
    # Native
    "NativeAdapter",
    "NativeArray",
    "NativeFacade",
    "NativeFunction",
    "NativeObject",
    "NativeString",
    # Python
    "PythonAdapter",
    "PythonArray",
    "PythonFacade",
    "PythonFunction",
    "PythonModule",
    # Go
    "GoAdapter",
    "GoFacade",
    "GoFunction",
    "GoModule",
    "GoStrings",
    # C++
    "CppAdapter",
    "CppFacade",
    "CppFunction",
    "CppLibrary",
    "CppMath",
]
