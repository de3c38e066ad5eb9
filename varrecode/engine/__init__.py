"""Annotation engines serving per-variant annotation lines to the recoder."""

from varrecode.engine.base import AnnotationEngine, AnnotationLine, EngineError
from varrecode.engine.json_output import JsonOutputEngine
from varrecode.engine.vep import VepCommandEngine

__all__ = [
    "AnnotationEngine",
    "AnnotationLine",
    "EngineError",
    "JsonOutputEngine",
    "VepCommandEngine",
]
