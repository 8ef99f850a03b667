"""ONNX export: probes, translators and model assembly."""

from onnxtrace.export import translators
from onnxtrace.export.naming import (
    default_namestrat,
    genname,
    name_runningnr,
    name_scoped,
    name_suffixed,
    name_unique,
    name_vertices,
    recursename,
)
from onnxtrace.export.onnx_export import export_onnx, graphproto, infer_inshapes, modelproto
from onnxtrace.export.probe import GraphBuilder, Probe, finalize, input_probe
from onnxtrace.export.registry import (
    OperatorKind,
    activation_attributes,
    list_translators,
    register_activation,
    register_translator,
)
from onnxtrace.export.validation import validate, validate_onnx_model_file

__all__ = [
    "GraphBuilder",
    "OperatorKind",
    "Probe",
    "activation_attributes",
    "default_namestrat",
    "export_onnx",
    "finalize",
    "genname",
    "graphproto",
    "infer_inshapes",
    "input_probe",
    "list_translators",
    "modelproto",
    "name_runningnr",
    "name_scoped",
    "name_suffixed",
    "name_unique",
    "name_vertices",
    "recursename",
    "register_activation",
    "register_translator",
    "translators",
    "validate",
    "validate_onnx_model_file",
]
